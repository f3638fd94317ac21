"""Ship error reports to an external collector.

    ERRORKIT_WEBHOOK_URL=https://errors.example.com/ingest uvicorn examples.fastapi_webhook:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from errorkit import ErrorKitConfig, ErrorRegistry, ExceptionDispatcher, Limit, Sample, WebhookReporter
from errorkit.integrations.fastapi import install

logging.basicConfig(level=logging.INFO)


class CacheMiss(Exception):
    pass


class PaymentDeclined(Exception):
    pass


config = ErrorKitConfig()
webhook = WebhookReporter.from_config(config)

registry = ErrorRegistry()
# Only 1 in 10 cache misses, and at most 300 reports of anything per minute
registry.throttle(lambda e: Sample(0.1) if isinstance(e, CacheMiss) else Limit.per_minute(300))


@registry.reportable(PaymentDeclined, stop=True)
def notify_billing(error: BaseException) -> None:
    logging.getLogger("billing").warning("Payment declined: %s", error)


dispatcher = ExceptionDispatcher(registry, config, reporters=[webhook])


@asynccontextmanager
async def lifespan(app: FastAPI):
    await webhook.start()
    try:
        yield
    finally:
        await webhook.stop()


app = FastAPI(lifespan=lifespan)
install(app, dispatcher)


@app.get("/checkout")
async def checkout():
    raise PaymentDeclined("card declined")


@app.get("/products/{sku}")
async def product(sku: str):
    raise CacheMiss(sku)
