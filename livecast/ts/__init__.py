"""MPEG transport stream muxing and the PAT/PMT CRC-32."""