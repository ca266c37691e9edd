import datetime


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def normalize_datetime(value: datetime.datetime) -> datetime.datetime:
    """ Fechas con zona horaria -> UTC naive, como se guardan en la base. """
    if value.tzinfo is not None:
        return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value
