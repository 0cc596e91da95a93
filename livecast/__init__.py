"""Live streaming building blocks: AMF codecs, FLV tags and writer, MPEG-TS muxing, AAC and MP3 parsing."""

__version__ = "0.1.0"