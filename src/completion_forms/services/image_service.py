"""Photo capture, orientation normalization and upload for file questions."""
import asyncio
import logging
import os
import uuid

from shared.enums import JobKind, UploadTarget
from shared.utils import normalize_image_orientation, CorruptedImageError
from .api_service import APIError
from .form_backends import PreconditionError


class PermissionDeniedError(Exception):
    """The user refused camera or photo library access."""
    pass


class UploadInProgressError(Exception):
    """A photo for this question is still uploading."""
    pass


class UploadError(Exception):
    """The photo could not be stored remotely."""
    pass


class ImageProvider:
    """Device camera / photo library access.

    A presentation layer supplies the real one; both methods are coroutines.
    """

    async def request_permission(self, source):
        """Return True when access to the source is granted."""
        raise NotImplementedError

    async def pick_image(self, source):
        """Return a local image path, or None when the user cancels."""
        raise NotImplementedError


class PhotoPipeline:
    """Capture -> normalize -> upload -> bind the remote URL into the form store.

    Only the remote URL ever becomes an answer; the local capture path is
    kept out of the answer map.
    """

    def __init__(self, store, forms_api, backend=None, image_provider=None, work_dir=None,
                 quality=85, tc_rotation=-90):
        self.store = store
        self.forms_api = forms_api
        self.backend = backend
        self.image_provider = image_provider
        self.work_dir = work_dir
        self.quality = quality
        self.tc_rotation = tc_rotation
        self.logger = logging.getLogger(self.__class__.__name__)
        if self.work_dir:
            os.makedirs(self.work_dir, exist_ok=True)

    @property
    def state(self):
        return self.store.state

    def is_uploading(self, question_id):
        return question_id in self.state.uploading

    async def capture(self, source):
        """Ask for permission, then for an image. None means the user cancelled."""
        if self.image_provider is None:
            raise PermissionDeniedError("No camera or photo library available")
        granted = await self.image_provider.request_permission(source)
        if not granted:
            raise PermissionDeniedError(f"Permission to use the {source.value} was denied")
        path = await self.image_provider.pick_image(source)
        if not path:
            self.logger.info(f"Photo {source.value} cancelled")
            return None
        return path

    def normalize_orientation(self, path, rotate=0):
        """Bake EXIF orientation (plus any extra rotation) into a new JPEG.

        Any failure hands back the original path so the upload can still go ahead.
        """
        directory = self.work_dir or os.path.dirname(os.path.abspath(path))
        output_path = os.path.join(directory, f"normalized_{uuid.uuid4().hex}.jpg")
        try:
            result = normalize_image_orientation(
                image_path=path, output_path=output_path, rotate=rotate, quality=self.quality
            )
        except CorruptedImageError as e:
            self.logger.warning(f"Could not normalize {path}, uploading original: {e}")
            return path
        if result is None:
            self.logger.warning(f"Could not normalize {path}, uploading original")
            return path
        return result

    def rotation_for(self, target):
        """TradieConnect-bound photos get the counter-rotation its report renderer needs."""
        if target == UploadTarget.EXTERNAL:
            return self.tc_rotation
        if self.backend is not None and self.backend.job_kind == JobKind.TC_JOB:
            return self.tc_rotation
        return 0

    async def _send(self, question_id, path, target, job_id):
        if target == UploadTarget.EXTERNAL:
            return await asyncio.to_thread(self.forms_api.upload_tc_live_photo, job_id, path, question_id)
        if self.backend is None:
            raise UploadError("No form backend to upload to")
        return await self.backend.upload_photo(job_id, question_id, path)

    async def upload(self, question_id, path, target, job_id, multiple=False):
        """Upload one photo for a question and bind its URL as the answer."""
        if self.is_uploading(question_id):
            raise UploadInProgressError(f"A photo for question {question_id} is already uploading")

        self.state.uploading.add(question_id)
        normalized = path
        try:
            normalized = await asyncio.to_thread(self.normalize_orientation, path, self.rotation_for(target))
            try:
                result = await self._send(question_id, normalized, target, job_id)
            except APIError as e:
                raise UploadError(e.message) from e
            except (ValueError, OSError, PreconditionError) as e:
                # Vanished or unreadable capture, or no stored form to attach to
                raise UploadError(str(e)) from e
        finally:
            self.state.uploading.discard(question_id)
            if normalized != path and os.path.exists(normalized):
                os.remove(normalized)

        self.store.bind_photo(question_id, result.url, multiple=multiple)
        self.logger.info(f"Photo for question {question_id} uploaded: {result.url}")
        return result.url
