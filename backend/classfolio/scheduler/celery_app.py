from celery import Celery
from celery.schedules import crontab

from classfolio.core.config import settings

app = Celery("classfolio")
app.conf.broker_url = settings.CELERY_BROKER_URL
app.conf.result_backend = settings.CELERY_RESULT_BACKEND
app.conf.timezone = settings.CELERY_TIMEZONE
app.conf.enable_utc = False

app.autodiscover_tasks(["classfolio"])
app.conf.imports = ("classfolio.tasks.prices",)

app.conf.beat_schedule = {
    "refresh-held-prices": {
        "task": "classfolio.tasks.prices.refresh_held_prices",
        "schedule": crontab(
            minute=f"*/{settings.PRICE_REFRESH_MINUTES}",
            hour="7-17",
            day_of_week="mon-fri",
        ),
    },
}
