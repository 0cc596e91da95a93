# livecast

Building blocks for live audio/video streaming, in pure Python with no
third-party dependencies: AMF0/AMF3 serialisation, FLV tag parsing and
writing, MPEG transport stream muxing, and AAC/MP3 audio parsing.

## Modules

- `livecast.av` – the `Packet` and `Info` dataclasses shared by every
  component, the FLV tag, sound and frame constants, and `RWBase`, which
  records the last audio and video timestamps of a reader or writer and
  reports whether it has been active within its timeout (in seconds).
- `livecast.config` – `load_config(path)` reads a JSON server configuration
  into a `ServerConfig` holding `Application` entries.
  `ServerConfig.check_app_name(name)` tells whether an application is
  configured with `liveon` set to `"on"`, and
  `ServerConfig.static_push_urls(name)` returns its static push URLs (or an
  empty list).
- `livecast.amf.core` – AMF markers, `AmfError`, the `TypedObject` and
  `Trait` records, stream helpers (`read_bytes`, `read_byte`, `read_marker`,
  `write_marker`, `assert_marker`) and the `dump`/`dump_bytes` printers.
- `livecast.amf.encoder` – `Encoder`, which writes Python values as AMF0 or
  AMF3 and returns the number of bytes written.
- `livecast.amf.decoder3` – `Amf3Decoder`, a stateful AMF3 decoder with
  string, object and trait reference tables, support for the Flex
  `DSA`/`DSK`/`ArrayCollection` externalizable types and
  `register_external_handler` for others.
- `livecast.amf.decoder` – `Decoder`, which decodes AMF0 and (through the
  same instance) AMF3; `decode_batch` reads values until none is left.
- `livecast.amf.metadata` – `metadata_reform(data, flag)` adds (`ADD`) or
  strips (`DEL`) the encoded `@setDataFrame` string at the start of script
  data.
- `livecast.flv.tag` – `Tag` parses FLV audio/video data headers; `Demuxer`
  attaches the parsed header to a `Packet` (`demux_header`) or also strips it
  from the payload (`demux`), raising `AvcEndSequence` on an AVC
  end-of-sequence packet.
- `livecast.flv.writer` – `FlvWriter` writes packets as FLV tags to a binary
  file; `write_flv(handler, info, path)` opens the file, hands the writer to
  `handler.handle_writer` and waits until the writer is closed.
- `livecast.ts.crc` – `gen_crc32`, the MPEG-2 CRC-32 used in PAT/PMT
  sections.
- `livecast.ts.muxer` – `Muxer` splits a packet into 188-byte TS packets
  (`mux`, returning how many were written) and builds PAT and PMT packets
  (`pat`, `pmt`), each with its own continuity counter.
- `livecast.aac` – `AacParser` reads the AudioSpecificConfig from an AAC
  sequence header and writes raw frames as ADTS; raises `AacError`.
- `livecast.mp3` – `Mp3Parser` reads the sampling frequency from an MP3 frame
  header; raises `Mp3Error`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Encode and decode AMF values:

```python
import io
from livecast.amf.encoder import Encoder
from livecast.amf.decoder import Decoder

buf = io.BytesIO()
Encoder().encode(buf, {"foo": "bar"}, 0)
buf.seek(0)
print(Decoder().decode(buf, 0))   # {'foo': 'bar'}
```

Mux an audio packet into MPEG-TS packets:

```python
import io
from livecast.av import Packet
from livecast.ts.muxer import Muxer

out = io.BytesIO()
muxer = Muxer()
out.write(muxer.pat())
out.write(muxer.pmt(10, False))
count = muxer.mux(Packet(is_audio=True, data=b"\xaf\x01\x21\x19"), out)
```

Load the server configuration:

```python
from livecast.config import load_config

config = load_config("livecast.cfg")
if config.check_app_name("live"):
    print(config.static_push_urls("live"))
```

The configuration file is JSON of this shape (key names are matched without
regard to case):

```json
{
  "server": [
    {"appname": "live", "liveon": "on", "hlson": "on", "static_push": []}
  ]
}
```

## What this package does not do

It is a library of parts, not a running server. There is no RTMP server or
client, no HLS or HTTP-FLV server, no HTTP management interface and no
command-line program. Video codec data is not parsed: the TS muxer takes
H.264 payloads as they come and only reads the key-frame flag and
composition time from the packet's `Tag` header.