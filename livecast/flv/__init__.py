"""FLV tag header parsing and FLV file writing."""