import importlib
from typing import ClassVar

from unwatermark.config.settings import Settings
from unwatermark.engine.base import BaseWatermarkEngine
from unwatermark.engine.example_engine import ExampleEngine
from unwatermark.engine.exceptions import EngineInitializationError
from unwatermark.logging.logger import Log


class EngineFactory:
    """Creates the configured watermark engine."""

    ADAPTERS: ClassVar[dict[str, type[BaseWatermarkEngine]]] = {
        "example": ExampleEngine,
    }

    @classmethod
    async def create(cls, settings: Settings) -> BaseWatermarkEngine:
        """Resolve and construct the engine named by ``settings.engine``.

        Raises:
            EngineInitializationError: if the engine cannot be resolved or built.
        """
        engine_cls = cls._resolve(settings.engine)
        try:
            engine = await engine_cls.create()
        except Exception as exc:
            raise EngineInitializationError(
                f"Engine '{settings.engine}' failed to initialize: {exc}"
            ) from exc
        Log.info(f"Engine '{settings.engine}' initialized")
        return engine

    @classmethod
    def _resolve(cls, name: str) -> type[BaseWatermarkEngine]:
        key = name.strip()
        adapter_cls = cls.ADAPTERS.get(key.lower())
        if adapter_cls is not None:
            return adapter_cls
        if ":" not in key:
            raise EngineInitializationError(
                f"Unknown engine '{name}'. Choose from: {list(cls.ADAPTERS)} "
                "or use 'module:ClassName'"
            )
        module_name, _, class_name = key.partition(":")
        try:
            module = importlib.import_module(module_name)
            adapter_cls = getattr(module, class_name)
        except (ImportError, AttributeError) as exc:
            raise EngineInitializationError(f"Cannot import engine '{name}': {exc}") from exc
        if not (isinstance(adapter_cls, type) and issubclass(adapter_cls, BaseWatermarkEngine)):
            raise EngineInitializationError(
                f"Engine '{name}' is not a BaseWatermarkEngine subclass"
            )
        return adapter_cls
