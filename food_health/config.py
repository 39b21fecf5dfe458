import os


def _parse_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_cors_origins(raw: str) -> list[str]:
    return _parse_csv(raw) or ["*"]


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS", "*"))
ALLOW_ALL_ORIGINS = CORS_ORIGINS == ["*"]

# -----------------------------------
# Upload / preprocessing configuration
# -----------------------------------

# ALLOWED_CONTENT_TYPES: media types accepted on /analyze
ALLOWED_CONTENT_TYPES = _parse_csv(
    os.getenv("ALLOWED_CONTENT_TYPES", "image/jpeg,image/png,image/webp")
)

# USE_BACKEND_RESIZE: decode + resize upload with Pillow before the vision call
USE_BACKEND_RESIZE = os.getenv("USE_BACKEND_RESIZE", "true").lower() == "true"

# BACKEND_MAX_SIDE_PX: longer side of image after resize
BACKEND_MAX_SIDE_PX = int(os.getenv("BACKEND_MAX_SIDE_PX", "1024"))

# ANALYSIS_TIMEOUT_S: hard timeout for the full analysis pipeline (0 = disabled)
ANALYSIS_TIMEOUT_S = float(os.getenv("ANALYSIS_TIMEOUT_S", "0"))

# -----------------------------------
# GPT / models configuration
# -----------------------------------

# GPT_MODEL: vision model used to identify the dish and estimate nutrition
GPT_MODEL = os.getenv("GPT_MODEL", "gpt-4o-mini")

# RATING_MODEL / SUGGEST_MODEL: text models for health rating and alternatives
RATING_MODEL = os.getenv("RATING_MODEL", GPT_MODEL)
SUGGEST_MODEL = os.getenv("SUGGEST_MODEL", GPT_MODEL)

# CALORIE_TOLERANCE: relative deviation between stated calories and
# protein*4 + carbs*4 + fat*9 above which calories are recalculated
CALORIE_TOLERANCE = float(os.getenv("CALORIE_TOLERANCE", "0.25"))

# -----------------------------------
# Alternatives configuration
# -----------------------------------

# ALTERNATIVES_MODE:
# - "structured": cooked alternatives with recipes + packaged alternatives with prices
# - "simple"    : flat list of alternative food names
ALTERNATIVES_MODE = os.getenv("ALTERNATIVES_MODE", "structured").lower()

# ALTERNATIVES_COUNT: suggestions per category
ALTERNATIVES_COUNT = int(os.getenv("ALTERNATIVES_COUNT", "2"))

# PRICE_CURRENCY: currency used for packaged alternative prices
PRICE_CURRENCY = os.getenv("PRICE_CURRENCY", "Indian Rupees (₹)")

# IMAGE_SOURCE: where alternative images come from
# - "placeholder": deterministic placeholder seeded from the food name
# - "unsplash"   : Unsplash keyword search, placeholder on failure
# - "generated"  : image generation model, placeholder on failure
IMAGE_SOURCE = os.getenv("IMAGE_SOURCE", "placeholder").lower()

UNSPLASH_ACCESS_KEY = os.getenv("UNSPLASH_ACCESS_KEY")
UNSPLASH_API_URL = os.getenv("UNSPLASH_API_URL", "https://api.unsplash.com/search/photos")
UNSPLASH_TIMEOUT_S = float(os.getenv("UNSPLASH_TIMEOUT_S", "10"))

IMAGE_GEN_MODEL = os.getenv("IMAGE_GEN_MODEL", "dall-e-3")
IMAGE_GEN_SIZE = os.getenv("IMAGE_GEN_SIZE", "1024x1024")

PLACEHOLDER_IMAGE_URL = os.getenv("PLACEHOLDER_IMAGE_URL", "https://picsum.photos").rstrip("/")
PLACEHOLDER_IMAGE_SIZE = int(os.getenv("PLACEHOLDER_IMAGE_SIZE", "400"))
