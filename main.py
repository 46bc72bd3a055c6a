import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

import click
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from billing.core.config import settings
from billing.core.database import SessionLocal, init_db
from billing.core.exceptions import BillingError
from billing.core.init import initialize_application
from billing.core.schedular import shutdown_scheduler, start_scheduler
from billing.routers import routes
from billing.services.notifier import ExpiryNotifier
from billing.services.transaction import TransactionService
from billing.utils.clock import utcnow

ROOT_DIR = Path(__file__).parent
LOG_PATH = ROOT_DIR / settings.log_file
LOG_PATH.parent.mkdir(parents=True, exist_ok=True)


# ----------------------------------------------------------------------------
# Logging
# ----------------------------------------------------------------------------
def configure_logging() -> logging.Logger:
    """Send every billing log record to stdout and to the log file."""
    level = (
        logging.DEBUG
        if settings.debug
        else getattr(logging, settings.log_level.upper(), logging.INFO)
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_PATH, mode="a", encoding="utf-8"),
        ],
        force=True,
    )

    # Third-party noise
    for name in ("sqlalchemy.engine", "uvicorn.access", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("billing")


logger = configure_logging()


# ----------------------------------------------------------------------------
# Startup / shutdown
# ----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Booting {settings.app_name} v{settings.app_version}")

    scheduler = None
    try:
        init_db()
        logger.info("✓ Schema ready")

        db = SessionLocal()
        try:
            initialize_application(db)
        finally:
            db.close()

        if settings.notifier_enabled:
            scheduler = start_scheduler()
        else:
            logger.info("Expiry notifier disabled (NOTIFIER_ENABLED=false)")
    except Exception as e:
        logger.error(f"✗ Startup failed: {e}", exc_info=True)
        raise

    logger.info("✓ Billing service is up")
    yield

    shutdown_scheduler(scheduler)
    logger.info("✓ Billing service stopped")


app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    debug=settings.debug,
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def trace_request(request: Request, call_next):
    """Stamp every response with a request id and the handling time."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()

    response = await call_next(request)

    elapsed = time.perf_counter() - started
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"in {elapsed:.4f}s [{request_id}]"
    )
    return response


# ----------------------------------------------------------------------------
# Error rendering
# ----------------------------------------------------------------------------
def error_response(status_code: int, message: str, error_type: str, **extra):
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "type": error_type, **extra},
        headers=headers,
    )


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_type} on {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.error_type)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Invalid request to {request.url.path}: {errors}")
    details = [
        {
            "loc": list(err.get("loc", [])),
            "msg": str(err.get("msg", "")),
            "type": err.get("type"),
        }
        for err in errors
    ]
    return error_response(400, "Validation error", "validation", details=details)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database failure on {request.url.path}", exc_info=True)
    return error_response(500, "Database error occurred", type(exc).__name__)


# ----------------------------------------------------------------------------
# Service endpoints
# ----------------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "api": settings.api_prefix,
    }


@app.get("/health")
def health_check():
    """Liveness plus a database round trip."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "unhealthy"
    finally:
        db.close()

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "database": database,
        "timestamp": utcnow().isoformat(),
        "environment": "production" if settings.production else "development",
    }


for router in routes:
    app.include_router(router, prefix=settings.api_prefix)


# ----------------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------------
@click.group()
def cli():
    """Course billing service."""


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--reload", is_flag=True, help="Restart on code changes")
def dev(host: str, port: int, reload: bool):
    """Serve the API with a single Uvicorn process."""
    logger.info(f"Development server on http://{host}:{port} (reload={reload})")
    uvicorn.run("main:app", host=host, port=port, reload=reload, log_level="debug")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--workers", default=4, show_default=True)
def prod(host: str, port: int, workers: int):
    """Serve the API with Gunicorn and Uvicorn workers."""
    cmd = [
        "gunicorn",
        "main:app",
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--workers", str(workers),
        "--bind", f"{host}:{port}",
        "--access-logfile", "-",
        "--error-logfile", "-",
        "--timeout", "120",
        "--graceful-timeout", "30",
    ]
    logger.info(f"Production server: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, check=True)
    except FileNotFoundError:
        raise click.ClickException("gunicorn is not installed")
    except subprocess.CalledProcessError as e:
        logger.error(f"Gunicorn exited with {e.returncode}")
        raise click.ClickException(str(e))


@cli.command("notify-expiring")
@click.option(
    "--window-hours",
    default=settings.notifier_window_hours,
    show_default=True,
    help="Notify about rentals ending within this many hours",
)
def notify_expiring(window_hours: int):
    """Mail one digest per account about rentals that end soon."""
    init_db()
    db = SessionLocal()
    try:
        report = ExpiryNotifier(db).run(window=timedelta(hours=window_hours))
    finally:
        db.close()

    click.echo(f"Sent: {len(report.sent)}")
    for email, reason in report.failed.items():
        click.echo(f"Failed: {email} ({reason})", err=True)
    if not report.ok:
        sys.exit(1)


@cli.command()
@click.option("--days", default=30, show_default=True, help="Report period length")
def report(days: int):
    """Print paid totals per account and course for the last N days."""
    init_db()
    date_to = utcnow()
    date_from = date_to - timedelta(days=days)

    db = SessionLocal()
    try:
        totals = TransactionService(db).period_totals(date_from, date_to)
    finally:
        db.close()

    logger.info(f"Period report {date_from:%Y-%m-%d}..{date_to:%Y-%m-%d}: {len(totals)} rows")
    click.echo(f"Payments from {date_from:%Y-%m-%d} to {date_to:%Y-%m-%d}")
    for row in totals:
        click.echo(
            f"{row.email:<30} {row.course_code:<20} {row.course_type:<5} "
            f"{row.transactions_count:>4} {row.total_amount:>12} {settings.currency}"
        )
    click.echo(f"Total: {sum(r.total_amount for r in totals)} {settings.currency}")


@cli.command()
def info():
    """Show the effective configuration."""
    click.echo(f"Application: {settings.app_name} {settings.app_version}")
    click.echo(f"Debug: {settings.debug}")
    click.echo(f"Rental period: {settings.rental_period_days} days")
    click.echo(f"Notifier: {'on' if settings.notifier_enabled else 'off'}")
    click.echo(f"Log file: {LOG_PATH.absolute()}")


if __name__ == "__main__":
    cli()
