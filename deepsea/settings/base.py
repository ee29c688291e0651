import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()  # Load .env file if present

BASE_DIR = Path(__file__).resolve().parents[2]
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() in {"1", "true", "yes"}
raw_hosts = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1")
ALLOWED_HOSTS = [h.strip() for h in raw_hosts.split(",") if h.strip()]

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

INSTALLED_APPS = [
    # Django Admin Deps
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Our apps
    "deepsea.apps.tokens.apps.TokensConfig",
    "deepsea.apps.treasury.apps.TreasuryConfig",
    "deepsea.apps.events.apps.EventsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "deepsea.urls"
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ]
        },
    }
]

# Postgres by default; override with dev/test settings as needed
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("DB_HOST", "localhost"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "NAME": os.getenv("DB_NAME", "deepsea_db"),
        "USER": os.getenv("DB_USER", "deepsea_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", "deepsea_password"),
    }
}

DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    from urllib.parse import urlparse

    parsed = urlparse(DATABASE_URL)
    DATABASES["default"].update(
        {
            "NAME": parsed.path.lstrip("/"),
            "USER": parsed.username,
            "PASSWORD": parsed.password,
            "HOST": parsed.hostname,
            "PORT": parsed.port or "5432",
            "OPTIONS": {"sslmode": os.getenv("DB_SSLMODE", "require")},
        }
    )

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Celery configuration
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_DEFAULT_QUEUE = os.getenv("CELERY_TASK_DEFAULT_QUEUE", "events")
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_TIME_LIMIT = int(os.getenv("CELERY_TASK_TIME_LIMIT", "3600"))

CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True

# ==============================================================================
# Web3 / Blockchain Configuration
# ==============================================================================

# Web3 Provider URL
# For local Hardhat: http://127.0.0.1:8545
# For Polygon Amoy: https://rpc-amoy.polygon.technology
WEB3_PROVIDER_URL = os.getenv("WEB3_PROVIDER_URL", "http://127.0.0.1:8545")

# Owner wallet (for contract write operations)
ADMIN_ADDRESS = os.getenv("ADMIN_ADDRESS", "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266")
ADMIN_PRIVATE_KEY = os.getenv(
    "ADMIN_PRIVATE_KEY",
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
)

# Contract Addresses (COLLECTION_ADDRESS falls back to the deployment record)
COLLECTION_ADDRESS = os.getenv("COLLECTION_ADDRESS", "")
USDC_ADDRESS = os.getenv("USDC_ADDRESS", "")

# ABI Paths
COLLECTION_ABI_PATH = BASE_DIR / "deepsea" / "onchain" / "abi" / "SecretOfTheDeepNFT.json"
USDC_ABI_PATH = BASE_DIR / "deepsea" / "onchain" / "abi" / "IERC20.json"

# Compiled contract (abi + bytecode) used by deploy_collection
COLLECTION_ARTIFACT_PATH = Path(
    os.getenv(
        "COLLECTION_ARTIFACT_PATH",
        BASE_DIR / "artifacts" / "contracts" / "SecretOfTheDeepNFT.sol" / "SecretOfTheDeepNFT.json",
    )
)

# Tooling state files
CURRENT_CONTRACT_FILE = Path(os.getenv("CURRENT_CONTRACT_FILE", BASE_DIR / ".current.json"))
WALLETS_FILE = Path(os.getenv("WALLETS_FILE", BASE_DIR / ".wallets.json"))

# Stable-coin contracts by network
USDC_ADDRESSES = {
    "Polygon Native USDC": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
    "Polygon Bridged USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    "Polygon Mumbai": "0xe6b8a5CF854791412c1f6EFC7CAf629f5Df1c747",
    "Arbitrum": "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",
    "Optimism": "0x7F5c764cBc14f9669B88837ca1490cCa17c31607",
}
USDC_DECIMALS = 6

# chain id -> (name, explorer base url)
NETWORKS = {
    137: ("Polygon Mainnet", "https://polygonscan.com"),
    80002: ("Polygon Amoy", "https://amoy.polygonscan.com"),
    31337: ("Hardhat", ""),
}

# ==============================================================================
# Collection defaults
# ==============================================================================

DEFAULT_BASE_URI = os.getenv("DEFAULT_BASE_URI", "https://api.copilot.cyrkl.com/tokens/{id}")
METADATA_REQUEST_TIMEOUT = int(os.getenv("METADATA_REQUEST_TIMEOUT", "10"))
METADATA_MAX_TOKEN_IDS = int(os.getenv("METADATA_MAX_TOKEN_IDS", "20"))

# ==============================================================================
# Event scanning
# ==============================================================================

EVENT_SCAN_CHUNK_SIZE = int(os.getenv("EVENT_SCAN_CHUNK_SIZE", "100"))
EVENT_SCAN_MIN_CHUNK_SIZE = int(os.getenv("EVENT_SCAN_MIN_CHUNK_SIZE", "10"))
EVENT_SCAN_SPLIT_FACTOR = int(os.getenv("EVENT_SCAN_SPLIT_FACTOR", "10"))
# ~55 hours on Polygon (2 sec blocks)
EVENT_SCAN_LOOKBACK_BLOCKS = int(os.getenv("EVENT_SCAN_LOOKBACK_BLOCKS", "100000"))
EVENT_SCAN_THROTTLE_SECONDS = float(os.getenv("EVENT_SCAN_THROTTLE_SECONDS", "0.1"))
AVERAGE_BLOCK_TIME_SECONDS = int(os.getenv("AVERAGE_BLOCK_TIME_SECONDS", "2"))
