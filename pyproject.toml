[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livecast"
version = "0.1.0"
description = "Live streaming building blocks: AMF0/AMF3 codecs, FLV tags and writer, MPEG-TS muxing, AAC and MP3 parsing"
requires-python = ">=3.10"
dependencies = []
keywords = ["amf", "flv", "mpeg-ts", "aac", "adts", "mp3", "streaming"]
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
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["livecast"]

[tool.pytest.ini_options]
addopts = "-ra"
