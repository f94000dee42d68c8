# livemux

Building blocks for a live streaming server, as a plain Python library.
Python 3.10 or later is required; the only runtime dependency is PyYAML.

## What is in it

- `livemux.amf` — AMF0 and AMF3 encoding and decoding
  (`livemux.amf.encoder.Encoder`, `livemux.amf.decoder.Decoder`), shared
  types and helpers in `livemux.amf.core` (`AmfError`, `Version`,
  `TypedObject`, `Trait`), and `livemux.amf.metadata.metadata_reform` for
  adding (`ADD`) or removing (`DEL`) the `@setDataFrame` prefix of script data.
- `livemux.av` — the media packet model (`Packet`), stream identity (`Info`),
  header protocols (`AudioPacketHeader`, `VideoPacketHeader`) and `RWBase`,
  which tracks the last audio and video timestamps and whether an endpoint is
  still alive.
- `livemux.flv` — FLV media tag header parsing (`livemux.flv.tag.Tag`), a
  demuxer that attaches the parsed header to a packet and strips it from the
  data (`livemux.flv.demuxer.Demuxer`, raising `AvcEndSequence` on an AVC
  end-of-sequence tag), and an FLV file writer with a recorder
  (`livemux.flv.muxer.FlvWriter`, `livemux.flv.muxer.FlvDvr`).
- `livemux.ts` — a transport stream muxer producing 188-byte packets, PAT and
  PMT tables (`livemux.ts.muxer.Muxer`) and the MPEG-2 CRC-32
  (`livemux.ts.crc32.gen_crc32`).
- `livemux.codec` — AAC AudioSpecificConfig parsing with ADTS framing
  (`livemux.codec.aac.AacParser`) and MP3 sample-rate detection
  (`livemux.codec.mp3.Mp3Parser`).
- `livemux.configure` — defaults, command-line flags, a YAML or JSON file and
  environment variables merged into one `Config`.

## AMF

The version is given as `0` (AMF0) or `3` (AMF3), or as `Version.AMF0` /
`Version.AMF3`.

```python
import io

from livemux.amf.decoder import Decoder
from livemux.amf.encoder import Encoder

buf = io.BytesIO()
Encoder().encode(buf, {"foo": "bar"}, 0)
assert buf.getvalue() == bytes.fromhex("030003666f6f020003626172000009")

buf.seek(0)
assert Decoder().decode(buf, 0) == {"foo": "bar"}
```

Encoding methods return the number of bytes written. In AMF0, strings whose
UTF-8 form is longer than 65535 bytes are written as long strings. In AMF3,
integers from 0 to 536870911 are written as AMF3 integers and other numbers as
doubles; dictionaries are written as sealed objects with their keys sorted,
and `datetime` values as dates in whole seconds (naive values are taken as
UTC). `Decoder.decode_batch(reader, version)` decodes values until the reader
is exhausted. Decoded AMF3 dates are UTC `datetime` objects; AMF0 dates are
returned as their raw millisecond number. Externalizable AMF3 types other than
the built-in Flex message types can be handled with
`register_external_handler(name, handler)`. Malformed input raises
`livemux.amf.core.AmfError`.

## FLV

```python
import io

from livemux.av import Packet
from livemux.flv.muxer import FlvWriter

out = io.BytesIO()
writer = FlvWriter("live", "stream", "rtmp://localhost/live/stream", out)
writer.write(Packet(is_video=True, timestamp=40, data=b"\x17\x01\x00\x00\x00"))
print(writer.info())   # <key: live/stream, URL: ..., UID: ..., Inter: false>
```

`FlvWriter.close()` closes the file once, and `wait(timeout)` blocks until it
is closed. `FlvDvr(config).get_writer(info)` creates the directory
`<flv_dir>/<app>` and opens `<flv_dir>/<app>/<name>_<unix time>.flv`; it
returns `None` when the key is not of the form `app/name` or the file cannot
be made. Without a `Config`, `flv_dir` is `tmp`.

## MPEG-TS

```python
from livemux.ts.muxer import Muxer

muxer = Muxer()
pat = muxer.pat()
pmt = muxer.pmt(10, True)   # AAC audio alongside H.264 video
assert len(pat) == len(pmt) == 188
```

`Muxer.mux(packet, writer)` splits one audio or video packet into transport
stream packets, adding the PES header, continuity counters and a PCR on key
frames, writes each 188-byte packet to `writer` (which may be `None`) and
returns how many packets it made. Video packets need a header such as a
`livemux.flv.tag.Tag`.

## Configuration

```python
from livemux.configure import load_config

config = load_config(["--rtmp_addr", ":1936"], {})
print(config.get("rtmp_addr"))
print(config.check_app_name("live"))
print(config.get_static_push_url_list("live"))
print(config.server_config())
```

`load_config(argv, environ)` takes `sys.argv[1:]` and `os.environ` when they
are not given. It reads the file named by `config_file` (default
`livego.yaml`; `.yaml`, `.yml` and `.json` files are understood). If the file
is read, its settings take the place of the built-in ones
(`default_settings()`); if not, a warning is logged and the built-in settings
are used. A value is then looked up, from highest precedence down, in
command-line flags, environment variables (the key upper-cased with dots
turned into underscores, such as `RTMP_ADDR` or `JWT_SECRET`), the file or
built-in settings, and the flag defaults. The `level` setting sets the level
of the `livemux` logger.

Flags: `--rtmp_addr`, `--enable_rtmps`, `--rtmps_cert`, `--rtmps_key`,
`--httpflv_addr`, `--hls_addr`, `--api_addr`, `--config_file`, `--level`,
`--hls_keep_after_end`, `--flv_dir`, `--read_timeout`, `--write_timeout`,
`--gop_num`, `--enable_tls_verify`.

## What it does not do

This is a library only. It has no command to run, and it does not listen on
any address: there is no RTMP, RTMPS, HTTP-FLV, HLS or management server, even
though the configuration carries their addresses and per-application switches.
It does not parse H.264 video data into Annex B form, so the TS muxer writes
video payloads as it is given them.