import os

from dotenv import load_dotenv

# Optional local overrides (log level, timezone); the values below always win.
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path)

# Settings are read once and cached, so the test environment has to be in
# place before anything under libs/ or services/ is imported.
os.environ["ENVIRONMENT"] = "local"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["JWT_SECRET"] = "test-jwt-secret"

from libs.common.config import get_settings  # noqa: E402

get_settings.cache_clear()
