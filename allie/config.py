import os

# ─── Backend (proxy) ──────────────────────────────────────────────────────────
# The client only ever talks to the proxy; third-party keys live server-side.
API_BASE_URL = os.getenv("API_BASE_URL", "https://hello-allie-backend.onrender.com/api").rstrip("/")

# ─── Conversation ─────────────────────────────────────────────────────────────
LANGUAGE    = os.getenv("LANGUAGE", "en")            # en, es
PERSONALITY = os.getenv("PERSONALITY", "friendly")   # friendly, sassy, motivational, humorous

HISTORY_RETENTION_S      = int(os.getenv("HISTORY_RETENTION_S", "1800"))   # 30 min
HISTORY_PRUNE_INTERVAL_S = int(os.getenv("HISTORY_PRUNE_INTERVAL_S", "60"))

# ─── HTTP timeouts (seconds) ──────────────────────────────────────────────────
TRANSCRIBE_TIMEOUT = int(os.getenv("TRANSCRIBE_TIMEOUT", "30"))
CHAT_TIMEOUT       = int(os.getenv("CHAT_TIMEOUT", "60"))
LOOKUP_TIMEOUT     = int(os.getenv("LOOKUP_TIMEOUT", "15"))   # weather, sports, schedule
TTS_TIMEOUT        = int(os.getenv("TTS_TIMEOUT", "60"))

# Extra transcription attempts after the first one fails. 0 = no retry.
TRANSCRIBE_RETRIES = int(os.getenv("TRANSCRIBE_RETRIES", "0"))

# ─── TTS Service ──────────────────────────────────────────────────────────────
TTS_BASE_URL = os.getenv("TTS_BASE_URL", "http://localhost:8006")
TTS_ENDPOINT = f"{TTS_BASE_URL}/generate"
TTS_VOICES = {
    "en": os.getenv("TTS_VOICE_EN", "default"),
    "es": os.getenv("TTS_VOICE_ES", "es-MX"),
}
TTS_VOLUME_GAIN = float(os.getenv("TTS_VOLUME_GAIN", "1.0"))
# Stream PCM as it is generated instead of waiting for the whole WAV.
TTS_STREAM = os.getenv("TTS_STREAM", "true").lower() == "true"

# ─── Audio Devices ────────────────────────────────────────────────────────────
# PyAudio device indices; run the following to list available devices:
#   python -c "import pyaudio; pa=pyaudio.PyAudio(); [print(i, pa.get_device_info_by_index(i)['name']) for i in range(pa.get_device_count())]"
# Set to -1 to use system default.
MIC_DEVICE_INDEX = int(os.getenv("MIC_DEVICE_INDEX", "-1"))
SPK_DEVICE_INDEX = int(os.getenv("SPK_DEVICE_INDEX", "-1"))

# ─── Audio Capture ────────────────────────────────────────────────────────────
MIC_SAMPLE_RATE   = 44100
MIC_CHANNELS      = 1
MIC_CHUNK_SAMPLES = 1024
RECORDING_DIR     = os.getenv("RECORDING_DIR", "")   # empty → system temp dir
MAX_RECORDING_S   = int(os.getenv("MAX_RECORDING_S", "120"))

# ─── Audio Playback ───────────────────────────────────────────────────────────
SPK_SAMPLE_RATE = 44100   # TTS output is 44100 Hz mono 16-bit
SPK_CHANNELS    = 1

# ─── Logging ──────────────────────────────────────────────────────────────────
LOG_FILE  = os.getenv("LOG_FILE",  "hello_allie.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ─── Proxy backend (server side only) ─────────────────────────────────────────
PROXY_HOST = os.getenv("PROXY_HOST", "0.0.0.0")
PROXY_PORT = int(os.getenv("PORT", "5000"))

OPENAI_BASE_URL         = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_API_KEY          = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL            = os.getenv("OPENAI_MODEL", "gpt-4")
OPENAI_TRANSCRIBE_MODEL = os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1")
OPENAI_MAX_TOKENS       = int(os.getenv("OPENAI_MAX_TOKENS", "300"))

RAPIDAPI_KEY      = os.getenv("RAPIDAPI_KEY", "")
WEATHER_API_HOST  = os.getenv("WEATHER_API_HOST", "open-weather13.p.rapidapi.com")
SPORTS_API_HOST   = os.getenv("SPORTS_API_HOST", "therundown-therundown-v1.p.rapidapi.com")

# Scheduling requests are relayed verbatim; empty → scheduling disabled.
SCHEDULE_SERVICE_URL = os.getenv("SCHEDULE_SERVICE_URL", "").rstrip("/")
