import re

# Generated assets served for copy and download. The ``=s0-d?`` selector marks
# user-upload previews, which are left alone.
GENERATED_ASSET_URL = re.compile(
    r"^https://lh3\.googleusercontent\.com/rd-gg(?:-dl)?/.+=s(?!0-d\?).*"
)

_SIZE_SELECTOR = re.compile(r"=s\d+(?=[-?#]|$)")


def is_generated_asset_url(url: str) -> bool:
    return GENERATED_ASSET_URL.match(url) is not None


def canonical_size_url(url: str) -> str:
    """Swap the first thumbnail size selector for the full-size ``=s0`` variant."""
    return _SIZE_SELECTOR.sub("=s0", url, count=1)
