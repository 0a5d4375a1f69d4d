"""Language-pair configurations."""

LANG_CONFIG = {
    "PL-EN": {
        "native_language": "Polish",
        "target_language": "English",
        "native_code": "pl",
        "target_code": "en",
        "voice": "en-US-JennyNeural",
        "available_voices": [
            "en-US-JennyNeural",
            "en-US-GuyNeural",
            "en-GB-SoniaNeural",
            "en-GB-RyanNeural",
        ],
        "random_topic": "Losowe",
        "default_category": "własne",
    },
    "EN-DE": {
        "native_language": "English",
        "target_language": "German",
        "native_code": "en",
        "target_code": "de",
        "voice": "de-DE-ConradNeural",
        "available_voices": [
            "de-DE-ConradNeural",
            "de-DE-AmalaNeural",
            "de-DE-KatjaNeural",
            "de-DE-KillianNeural",
        ],
        "random_topic": "Random",
        "default_category": "custom",
    },
}
