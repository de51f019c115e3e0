import asyncio
from typing import Self
from unittest.mock import patch

import pytest
from PIL import Image

from unwatermark.config.settings import Settings
from unwatermark.engine.base import BaseWatermarkEngine, remove_watermark, standard_geometry
from unwatermark.engine.example_engine import ExampleEngine
from unwatermark.engine.exceptions import EngineInitializationError, EngineTimeoutError
from unwatermark.engine.factory import EngineFactory
from unwatermark.engine.handle import EngineHandle
from unwatermark.engine.models import Position, WatermarkGeometry


class BrokenEngine(ExampleEngine):
    @classmethod
    async def create(cls) -> Self:
        raise RuntimeError("no gpu")


class SlowEngine(ExampleEngine):
    async def remove_watermark_from_image(self, image: Image.Image) -> Image.Image:
        await asyncio.sleep(1)
        return image


class TestStandardGeometry:
    def test_small_image_uses_small_logo(self) -> None:
        assert standard_geometry(1024, 1024) == WatermarkGeometry(
            size=48, position=Position(x=944, y=944)
        )

    def test_large_image_uses_large_logo(self) -> None:
        assert standard_geometry(2048, 1536) == WatermarkGeometry(
            size=96, position=Position(x=1888, y=1376)
        )

    def test_one_large_side_is_not_enough(self) -> None:
        assert standard_geometry(2048, 1024).size == 48


class TestEngineFactory:
    def test_creates_example_engine(self, settings: Settings) -> None:
        engine = asyncio.run(EngineFactory.create(settings))
        assert isinstance(engine, ExampleEngine)

    def test_is_case_insensitive(self, settings: Settings) -> None:
        settings.engine = "Example"
        engine = asyncio.run(EngineFactory.create(settings))
        assert isinstance(engine, ExampleEngine)

    def test_resolves_dotted_path(self, settings: Settings) -> None:
        settings.engine = "unwatermark.engine.example_engine:ExampleEngine"
        engine = asyncio.run(EngineFactory.create(settings))
        assert isinstance(engine, ExampleEngine)

    def test_raises_for_unknown_engine(self, settings: Settings) -> None:
        settings.engine = "unknown"
        with pytest.raises(EngineInitializationError, match="Unknown engine"):
            asyncio.run(EngineFactory.create(settings))

    def test_raises_for_unimportable_path(self, settings: Settings) -> None:
        settings.engine = "no_such_module:Engine"
        with pytest.raises(EngineInitializationError, match="Cannot import"):
            asyncio.run(EngineFactory.create(settings))

    def test_raises_for_non_engine_class(self, settings: Settings) -> None:
        settings.engine = "pathlib:Path"
        with pytest.raises(EngineInitializationError, match="not a BaseWatermarkEngine"):
            asyncio.run(EngineFactory.create(settings))

    def test_wraps_creation_failure(self, settings: Settings) -> None:
        settings.engine = "broken"
        with (
            patch.dict(EngineFactory.ADAPTERS, {"broken": BrokenEngine}),
            pytest.raises(EngineInitializationError, match="no gpu"),
        ):
            asyncio.run(EngineFactory.create(settings))


class TestEngineHandle:
    def test_not_ready_until_initialized(self, settings: Settings) -> None:
        handle = EngineHandle()
        assert not handle.ready

        asyncio.run(handle.initialize(settings))

        assert handle.ready
        assert isinstance(handle.engine, BaseWatermarkEngine)


class TestRemoveWatermark:
    def test_returns_engine_result_without_timeout(self) -> None:
        image = Image.new("RGB", (8, 8))
        result = asyncio.run(remove_watermark(ExampleEngine(), image))
        assert result.mode == "RGBA"
        assert result.size == (8, 8)

    def test_raises_timeout_error_when_bound_exceeded(self) -> None:
        image = Image.new("RGB", (8, 8))
        with pytest.raises(EngineTimeoutError, match="0.01s"):
            asyncio.run(remove_watermark(SlowEngine(), image, timeout_seconds=0.01))
