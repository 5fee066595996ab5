from chatbridge.schemas.common import CamelModel


class CheckoutSessionIn(CamelModel):
    price_id: str | None = None
    email: str | None = None
    name: str | None = None
    user_id: str | None = None
