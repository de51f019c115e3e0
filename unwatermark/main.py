import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from unwatermark.config.settings import Settings
from unwatermark.engine.exceptions import EngineInitializationError
from unwatermark.engine.factory import EngineFactory
from unwatermark.logging.logger import Log
from unwatermark.pipeline.context import PipelineContext
from unwatermark.pipeline.models import SourceFile
from unwatermark.pipeline.session import UploadSession

mimetypes.add_type("image/webp", ".webp")


def load_source_files(paths: list[Path]) -> list[SourceFile]:
    """Read files from disk, guessing the media type from the extension."""
    files = []
    for path in paths:
        if not path.is_file():
            Log.warning(f"Skipping {path}: not a file")
            continue
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        files.append(SourceFile.from_path(path, media_type))
    return files


async def run(paths: list[Path], output_dir: Path, settings: Settings) -> int:
    """Process ``paths`` and write results to ``output_dir``. Returns an exit code."""
    try:
        engine = await EngineFactory.create(settings)
    except EngineInitializationError as exc:
        Log.error(f"Initialize error: {exc}")
        return 1

    session = UploadSession(PipelineContext(settings=settings, engine=engine))
    items = await session.handle_files(load_source_files(paths))
    if not items:
        Log.warning("No acceptable images to process")
        return 0

    output_dir.mkdir(parents=True, exist_ok=True)
    if len(items) == 1:
        download = session.download(items[0])
        if download is not None:
            name, data = download
            (output_dir / name).write_bytes(data)
            Log.info(f"Wrote {output_dir / name}")
    else:
        archive = session.export_archive()
        if archive is not None:
            (output_dir / archive.name).write_bytes(archive.data)
            Log.info(f"Wrote {output_dir / archive.name}")

    for item in items:
        if item.provenance_warning:
            Log.warning(f"{item.display_name}: {item.provenance_warning}")
    completed = session.batch.completed_count
    session.reset()
    return 0 if completed else 1


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> engine -> upload session -> write outputs."""
    settings = Settings()
    Log.configure(settings.log_level)

    parser = argparse.ArgumentParser(
        prog="unwatermark",
        description="Remove the visible watermark from generated images.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="images to clean")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path(settings.output_dir),
        help=f"output directory (default: {settings.output_dir})",
    )
    args = parser.parse_args(argv)
    return asyncio.run(run(args.files, args.output, settings))


if __name__ == "__main__":
    sys.exit(main())
