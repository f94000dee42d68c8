"""FLV tag parsing, demuxing, file writing and recording."""