from unwatermark.config.settings import Settings
from unwatermark.engine.base import BaseWatermarkEngine
from unwatermark.engine.factory import EngineFactory


class EngineHandle:
    """Late-bound engine reference shared by the interception components.

    Interceptors consult ``engine`` on every call; while it is ``None`` they
    pass work through untouched.
    """

    def __init__(self, engine: BaseWatermarkEngine | None = None) -> None:
        self.engine = engine

    @property
    def ready(self) -> bool:
        return self.engine is not None

    async def initialize(self, settings: Settings) -> BaseWatermarkEngine:
        self.engine = await EngineFactory.create(settings)
        return self.engine
