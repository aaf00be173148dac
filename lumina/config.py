import os


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    API_TZ_OFFSET_HOURS = int(os.getenv("API_TZ_OFFSET_HOURS", "6"))  # store runs on UTC+6

    # used until an admin saves site settings
    DEFAULT_DELIVERY_CHARGE = float(os.getenv("DEFAULT_DELIVERY_CHARGE", "60"))
    STORE_NAME = os.getenv("STORE_NAME", "Lumina Grocery")

    # "verify": recompute totals server-side before accepting an order
    # "trust":  store the client totals as sent
    ORDER_TOTALS_POLICY = os.getenv("ORDER_TOTALS_POLICY", "verify")
    ORDER_TOTAL_TOLERANCE = float(os.getenv("ORDER_TOTAL_TOLERANCE", "1.00"))

    STEADFAST_BASE_URL = os.getenv("STEADFAST_BASE_URL", "https://portal.packzy.com/api/v1")
    STEADFAST_API_KEY = os.getenv("STEADFAST_API_KEY", "")
    STEADFAST_SECRET_KEY = os.getenv("STEADFAST_SECRET_KEY", "")
    COURIER_TIMEOUT = float(os.getenv("COURIER_TIMEOUT", "15"))

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    LOG_LEVEL = "DEBUG"
    ORDER_TOTALS_POLICY = "verify"
    STEADFAST_API_KEY = "test-key"
    STEADFAST_SECRET_KEY = "test-secret"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
