"""MPEG transport stream muxing and CRC-32."""