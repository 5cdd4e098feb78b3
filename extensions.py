from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ============================================
# Extensions (bound to the app in create_app)
# ============================================

bcrypt = Bcrypt()
cors = CORS()

# Storage comes from RATELIMIT_STORAGE_URI: Redis in production, memory otherwise
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    strategy="fixed-window"
)
