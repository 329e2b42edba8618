from typing import Optional, Protocol

from ...uploads.types import ProcessingOptions, TransformResult


class BinaryTransformer(Protocol):
    def transform(self, data: bytes, options: ProcessingOptions, source_content_type: Optional[str] = None) -> TransformResult:
        ...
