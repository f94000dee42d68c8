"""AAC and MP3 header parsers."""