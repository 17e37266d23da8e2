"""Default tunables and static tables for News Signal Bot."""

# Timeouts (seconds)
DEFAULT_HTTP_TIMEOUT = 30
DEFAULT_ANALYSIS_TIMEOUT = 60

# Fixed-attempt retry for LLM inference
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0

# Content limits
CONTENT_PREVIEW_LIMIT = 1000
MAX_MESSAGE_LENGTH = 4000
MIN_SUMMARY_LENGTH = 34
SINCE_HOURS = 24

# Telegram
TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_PARSE_MODE = "HTML"
MAX_TELEGRAM_CAPTION_LENGTH = 1024
MAX_PHOTO_RETRIES = 3
PHOTO_RETRY_DELAY = 3.0
TRIPLE_ASTERISK = "***"
ESCAPED_TRIPLE_ASTERISK = "&#42;&#42;&#42;"
TRUNCATION_MARKER = "..."

# Browser-like headers so feed hosts don't block the bot
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/108.0.0.0 Safari/537.36"
)
ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
    "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.9"
)
ACCEPT_LANGUAGE = "en-US,en;q=0.9"

# LLM providers
PROVIDER_GEMINI = "gemini"
PROVIDER_BEDROCK = "bedrock"
DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"
DEFAULT_BEDROCK_MODEL_ID = "amazon.nova-micro-v1:0"
DEFAULT_AWS_REGION = "us-east-1"

# Russian month and weekday abbreviations as they appear in svtv.org pubDates
RUSSIAN_DATE_TOKENS = {
    "Янв": "Jan",
    "Фев": "Feb",
    "Мар": "Mar",
    "Апр": "Apr",
    "Май": "May",
    "Июн": "Jun",
    "Июл": "Jul",
    "Авг": "Aug",
    "Сен": "Sep",
    "Окт": "Oct",
    "Ноя": "Nov",
    "Дек": "Dec",
    "Пн": "Mon",
    "Вт": "Tue",
    "Ср": "Wed",
    "Чт": "Thu",
    "Пт": "Fri",
    "Сб": "Sat",
    "Вс": "Sun",
}

# Sources whose feeds publish localized dates
LOCALIZED_DATE_SOURCES = {
    "SVTV": RUSSIAN_DATE_TOKENS,
}
