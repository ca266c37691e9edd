import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQLAlchemy es muy verboso en DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
