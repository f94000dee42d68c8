[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livemux"
version = "0.1.0"
description = "Live streaming building blocks: AMF0/AMF3 codec, FLV tags and recording, MPEG-TS muxing, AAC/MP3 header parsing and server configuration"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["amf", "flv", "mpeg-ts", "aac", "adts", "mp3", "streaming", "rtmp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["livemux"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
