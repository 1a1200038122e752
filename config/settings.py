import os
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url
from corsheaders.defaults import default_headers

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> list[str]:
    return [s.strip() for s in os.getenv(name, default).split(",") if s.strip()]


# ---- Core ----
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-planora-dev-only-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", True)

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()

ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver,.vercel.app")

# --- behind proxy / https ---
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True

# ---- Cookies ----
SESSION_COOKIE_SAMESITE = "None" if not DEBUG else "Lax"
CSRF_COOKIE_SAMESITE   = "None" if not DEBUG else "Lax"
SESSION_COOKIE_SECURE   = not DEBUG
CSRF_COOKIE_SECURE      = not DEBUG

# ---- Apps ----
INSTALLED_APPS = [
    "jazzmin",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "planora.apps.PlanoraConfig",
]

# ---- Middleware (CORS first) ----
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

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
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

# ---- DB ----
if DATABASE_URL:
    DATABASES = {
        "default": dj_database_url.parse(
            DATABASE_URL,
            conn_max_age=600,
            ssl_require=_env_bool("DATABASE_SSL_REQUIRE", True),
        )
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = []

# ---- I18N/Timezone ----
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Asia/Kolkata"
USE_I18N = True
USE_TZ = True

# ---- Static / media ----
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/media/"
MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", str(BASE_DIR / "media")))

# ticket PDFs, branding JSON and event covers go through default_storage
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ---- CORS ----
CORS_ALLOWED_ORIGINS = _env_list("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
CORS_ALLOWED_ORIGIN_REGEXES = [
    r"^https://.*\.vercel\.app$",
]
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = list(default_headers) + [
    "Authorization",
    "X-CSRFToken",
    "X-OTP-Token",
    "X-Organizer-Secret",
]

# ---- CSRF ----
CSRF_TRUSTED_ORIGINS = _env_list("CSRF_TRUSTED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")

# ---- DRF ----
# No default authentication: public views stay anonymous, admin views read the
# admin_session cookie and organizer views declare their own classes.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "EXCEPTION_HANDLER": "planora.exceptions.api_exception_handler",
}

# ---- Public URLs ----
BASE_URL = os.getenv("BASE_URL", "http://localhost:3000").rstrip("/")
STORAGE_URL_EXPIRES = int(os.getenv("STORAGE_URL_EXPIRES", "604800"))

# ---- Razorpay ----
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_VERIFY_CAPTURE = _env_bool("RAZORPAY_VERIFY_CAPTURE", False)
TICKET_PRICE_PAISE = int(os.getenv("TICKET_PRICE_PAISE", "100000"))

# ---- Admin portal ----
# comma separated; no built-in fallback, admin login fails closed when unset
ADMIN_SECRET = os.getenv("ADMIN_SECRET", "")
ADMIN_SESSION_TTL = int(os.getenv("ADMIN_SESSION_TTL", "3600"))
ADMIN_DEFAULT_EVENT_ID = os.getenv("ADMIN_DEFAULT_EVENT_ID", "")

# ---- OTP ----
OTP_SECRET = os.getenv("OTP_SECRET", "")
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "600"))
OTP_CODE_TTL_MINUTES = int(os.getenv("OTP_CODE_TTL_MINUTES", "10"))

# ---- Organizer bearer tokens ----
ORGANIZER_JWT = {
    "SECRET": os.getenv("ORGANIZER_JWT_SECRET"),
    "AUDIENCE": os.getenv("ORGANIZER_JWT_AUDIENCE", "authenticated"),
    "ALGORITHMS": _env_list("ORGANIZER_JWT_ALGORITHMS", "HS256"),
}

# ---- Email ----
EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "smtp").strip().lower()
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend")
if EMAIL_PROVIDER == "resend":
    EMAIL_HOST = "smtp.resend.com"
    EMAIL_PORT = 587
    EMAIL_HOST_USER = "resend"
    EMAIL_HOST_PASSWORD = os.getenv("RESEND_API_KEY", "")
    EMAIL_USE_TLS = True
else:
    EMAIL_HOST = os.getenv("SMTP_HOST", "localhost")
    EMAIL_PORT = int(os.getenv("SMTP_PORT", "587"))
    EMAIL_HOST_USER = os.getenv("SMTP_USER", "")
    EMAIL_HOST_PASSWORD = os.getenv("SMTP_PASS", "")
    EMAIL_USE_TLS = _env_bool("SMTP_USE_TLS", EMAIL_PORT == 587)
    EMAIL_USE_SSL = _env_bool("SMTP_USE_SSL", EMAIL_PORT == 465)
EMAIL_TIMEOUT = int(os.getenv("EMAIL_TIMEOUT", "15"))
DEFAULT_FROM_EMAIL = os.getenv("EMAIL_FROM", "noreply@planora.app")
SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@planora.app")

# ---- PDF ----
EVENT_IMAGE_TIMEOUT = float(os.getenv("EVENT_IMAGE_TIMEOUT", "5"))

# ---- Jazzmin ----
JAZZMIN_SETTINGS = {
    "site_title": "Planora Admin",
    "site_header": "Planora",
    "site_brand": "Planora Tickets",
    "welcome_sign": "Welcome to Planora Admin",
    "search_model": ["planora.Ticket", "planora.Event"],
    "icons": {
        "planora.Event": "fas fa-calendar-alt",
        "planora.Ticket": "fas fa-ticket-alt",
        "planora.EmailOtp": "fas fa-key",
        "planora.PaymentEvent": "fas fa-credit-card",
        "planora.AuditLog": "fas fa-history",
    },
}

# ---- Logging ----
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"console": {"class": "logging.StreamHandler"}},
    "loggers": {
        "planora": {"handlers": ["console"], "level": os.getenv("PLANORA_LOG_LEVEL", "INFO")},
        "planora.auth": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "django.request": {"handlers": ["console"], "level": "WARNING"},
    },
}
