from fastapi import FastAPI

from errorkit import ErrorKitConfig, ErrorRegistry, ErrorResponse, ExceptionDispatcher, abort
from errorkit.integrations.fastapi import install


class OrderNotFound(Exception):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id

    def context(self) -> dict:
        return {"order_id": self.order_id}


class ClientDisconnected(Exception):
    pass


registry = ErrorRegistry()
registry.dont_report(ClientDisconnected)
registry.level(OrderNotFound, "warning")
registry.context(lambda: {"service": "orders", "release": "2024.06.1"})
registry.renderable(
    OrderNotFound,
    lambda e, request: ErrorResponse(status_code=404, body={"message": str(e)}),
)

dispatcher = ExceptionDispatcher(
    registry,
    ErrorKitConfig(
        debug=True,
        error_pages={"404": "<h1>Nothing here</h1><p>$message</p>"},
    ),
)

app = FastAPI()
install(app, dispatcher)


@app.get("/orders/{order_id}")
async def get_order(order_id: str):
    if order_id == "admin":
        abort(403, "Admins only")
    raise OrderNotFound(order_id)


@app.get("/crash")
async def crash():
    raise RuntimeError("Something broke")
