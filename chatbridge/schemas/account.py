from chatbridge.schemas.common import CamelModel


class AccountLoginIn(CamelModel):
    user_id: str | None = None
    email: str | None = None
    name: str | None = None
    picture: str | None = None
