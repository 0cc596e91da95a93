"""AMF0 and AMF3 encoding and decoding, and @setDataFrame metadata handling."""