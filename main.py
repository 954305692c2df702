import logging

from app import create_app
from config import get_settings
from database import Base, engine
from logging_setup import setup_logging

settings = get_settings()
setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)

# Create tables
Base.metadata.create_all(bind=engine)

app = create_app(settings)

logging.getLogger(__name__).info("Serving with database %s", engine.url.render_as_string(hide_password=True))

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,  # keep the handlers installed by setup_logging
    )
