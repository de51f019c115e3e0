import uuid

from unwatermark.logging.logger import Log
from unwatermark.pipeline.exceptions import UnknownReferenceError


class ReferenceRegistry:
    """Issues revocable ``blob:`` handles to in-memory byte buffers.

    Every handle must be revoked exactly once; revoking an unknown or
    already revoked handle is reported and ignored.
    """

    SCHEME = "blob:"

    def __init__(self) -> None:
        self._buffers: dict[str, tuple[bytes, str]] = {}

    def create(self, data: bytes, media_type: str) -> str:
        reference = f"{self.SCHEME}{uuid.uuid4()}"
        self._buffers[reference] = (data, media_type)
        return reference

    def resolve(self, reference: str) -> bytes:
        """Return the bytes behind ``reference``.

        Raises:
            UnknownReferenceError: if the handle was revoked or never issued.
        """
        try:
            return self._buffers[reference][0]
        except KeyError:
            raise UnknownReferenceError(f"Reference {reference} is not live") from None

    def media_type(self, reference: str) -> str:
        try:
            return self._buffers[reference][1]
        except KeyError:
            raise UnknownReferenceError(f"Reference {reference} is not live") from None

    def revoke(self, reference: str) -> bool:
        if self._buffers.pop(reference, None) is None:
            Log.warning(f"Reference {reference} revoked twice or never issued")
            return False
        return True

    def is_live(self, reference: str) -> bool:
        return reference in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)
