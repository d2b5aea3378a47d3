# chainsense/extensions.py
from concurrent.futures import ThreadPoolExecutor

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ======================
# Database
# ======================
db = SQLAlchemy()
migrate = Migrate()

# ======================
# Login Manager
# ======================
# JSON API: the user loader and unauthorized handler live in chainsense/auth.py.
login_manager = LoginManager()

# ======================
# Rate Limiter
# ======================
# Backend comes from RATELIMIT_STORAGE_URI (settings.Config).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
)

# ======================
# Notification senders
# ======================
# Email/SMS delivery is fire-and-forget; a single attempt per message.
notify_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")
