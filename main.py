import os
import importlib
import logging
from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from alembic.config import Config
from alembic import command
from core.database import settings

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# APScheduler imports
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

# The directory where all application folders are located
APPS_DIRECTORY = "apps"
API_PREFIX = "/api/v1"
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# --- Database Migration Function ---
def run_migrations():
    """Programmatically runs Alembic migrations."""
    logger.info("⏳ Running database migrations...")
    try:
        # Load Alembic configuration from the alembic.ini file
        alembic_cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
        alembic_cfg.set_main_option("script_location", os.path.join(BASE_DIR, "alembic"))
        # Keep the logging set up above
        alembic_cfg.attributes["configure_logger"] = False
        # Run the 'upgrade head' command to apply all pending migrations
        command.upgrade(alembic_cfg, "head")
        logger.info("✅ Migrations complete.")
    except Exception:
        logger.exception("❌ An error occurred during migrations")
        raise

# Initialize the main FastAPI application
app = FastAPI(
    title="Spare Parts Stock API",
    description="Spare-part inventory for industrial maintenance: catalog, stock ledger, alerts and reports.",
    version="1.0.0",
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def health():
    return {"status": "ok", "service": app.title, "version": app.version}

# --- Dynamic App Discovery and Router Inclusion ---
def include_app_routers(application: FastAPI) -> list:
    apps_path = os.path.join(BASE_DIR, APPS_DIRECTORY)
    loaded = []

    if not os.path.isdir(apps_path):
        logger.error(f"The directory '{APPS_DIRECTORY}' was not found.")
        return loaded

    for item_name in sorted(os.listdir(apps_path)):
        app_dir = os.path.join(apps_path, item_name)
        if not os.path.isdir(app_dir) or item_name.startswith(('_', '.')):
            continue

        module_name = f"{APPS_DIRECTORY}.{item_name}.router"
        try:
            # Import the models from each app so Alembic and the ORM see every table
            if os.path.isfile(os.path.join(app_dir, "models.py")):
                importlib.import_module(f'{APPS_DIRECTORY}.{item_name}.models')

            router_module = importlib.import_module(module_name)
        except ImportError:
            logger.exception(f"❌ Failed to import router for '{item_name}'")
            continue

        router_instance = getattr(router_module, "router", None)
        if router_instance and isinstance(router_instance, APIRouter):
            application.include_router(
                router_instance,
                prefix=f"{API_PREFIX}/{item_name}",
                tags=[item_name.replace("_", " ").capitalize()]
            )
            loaded.append(item_name)
            logger.info(f"✅ Successfully loaded router from '{item_name}'.")
        else:
            logger.warning(f"⚠️ Could not find a valid APIRouter named 'router' in '{module_name}'.")

    return loaded


include_app_routers(app)

# --global scheduler variable
scheduler = None

# --- Startup Event Handler ---
@app.on_event("startup")
def startup_event():
    """Run database migrations and start the stock alert scheduler."""
    global scheduler
    logger.info("🚀 Starting Spare Parts Stock API...")
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        run_migrations()

    if settings.ALERT_SCAN_ENABLED:
        from apps.reports.services import log_stock_alerts

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            log_stock_alerts,
            CronTrigger.from_crontab(settings.ALERT_SCAN_CRON),
            id="stock_alert_scan",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(f"Stock alert scan scheduled: '{settings.ALERT_SCAN_CRON}'")

    logger.info("Application is ready to serve requests.")

# --- Shutdown Event Handler ---
@app.on_event("shutdown")
def shutdown_event():
    """Shutdown the scheduler when the application stops."""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("✅ Scheduler shut down gracefully.")
