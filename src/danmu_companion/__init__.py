"""
Danmu Companion

A live-room comment bot that answers viewers with an AI model and speaks:

danmu_companion/
├── senses/      - Feed listener, envelope parsing, event classification
├── brain/       - AI endpoint client, reply queue and orchestration
├── voice/       - Text-to-speech dispatch and audio playback
├── overlay/     - OBS browser-source overlay (typewriter + browser speech)
├── api/         - HTTP routes: chat config, AI reply, TTS proxies
├── storage/     - Page-keyed chat config table
├── config.py    - Configuration management
└── main.py      - Application entry point
"""

__version__ = "0.3.0"
