from typing import Any, Dict, Optional, Protocol, Union

from ...schemas.uploads.upload import UploadRequest, UploadResult
from ...uploads.types import UploadContext, UploadedFile


class SingleUploader(Protocol):
    async def upload_single(
        self,
        file: UploadedFile,
        request: Union[UploadRequest, Dict[str, Any]],
        context: UploadContext,
        skip_entity_validation: bool = False,
        custom_metadata: Optional[Dict[str, Any]] = None,
        display_order: Optional[int] = None,
    ) -> UploadResult:
        ...
