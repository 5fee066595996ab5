from chatbridge.schemas.common import CamelModel


class IntegrationTestIn(CamelModel):
    integration_id: str | None = None
    message: str | None = None
    destination: str | None = None
