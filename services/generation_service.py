"""
Generation orchestration.

One request runs through these steps:

    load user -> quota check -> credential -> prompt -> provider call
    -> post-process -> persist record (+ storage upload) -> count

The quota check happens before any provider call. Persisting and counting
run shielded from caller cancellation so a finished generation is never
lost because the client disconnected.
"""

import asyncio
import base64
import json
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AppUser
from core.exceptions import (
    GenerationNotFoundError,
    GenerationTimeoutError,
    InvalidCredentialError,
    NoOutputError,
    ProviderError,
    QuotaExceededError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)
from database import Database
from database.models import Generation, User
from database.repositories import GenerationRepository, UserRepository

from .credentials import (
    CredentialResolver,
    CredentialSource,
    InvalidStoredCredential,
    ResolvedCredential,
)
from .image_processing import DEFAULT_BORDER_THRESHOLD, detect_mime_type, normalize_image
from .prompt_builder import (
    PromptSettings,
    build_edit_prompt,
    build_generation_prompt,
    build_segmentation_prompt,
)
from .providers import GenerationRequest, GenerationResult, ImageInput, ImageProvider
from .quota_service import QuotaDecision, QuotaService
from .storage import StorageProvider

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


# ============ Results ============


@dataclass
class GenerationOutcome:
    """Result of a completed generate or edit request."""

    generation_id: UUID
    images: list[str]  # base64, post-processed
    image_url: str | None
    credential_source: CredentialSource
    quota: QuotaDecision
    duration: float = 0.0


@dataclass
class SegmentationMask:
    label: str
    box_2d: list[float]
    mask: str


@dataclass
class SegmentationResult:
    masks: list[SegmentationMask] = field(default_factory=list)


@dataclass
class HistoryPage:
    """A page of a user's generation history, newest first."""

    items: list[Generation]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


# ============ Service ============


class GenerationService:
    """Runs generation, edit and segmentation requests for users."""

    def __init__(
        self,
        database: Database,
        provider: ImageProvider,
        quota: QuotaService,
        credentials: CredentialResolver,
        storage: StorageProvider | None = None,
        border_threshold: int = DEFAULT_BORDER_THRESHOLD,
        storage_timeout: float = 30.0,
    ):
        self._database = database
        self._provider = provider
        self._quota = quota
        self._credentials = credentials
        self._storage = storage
        self._border_threshold = border_threshold
        self._storage_timeout = storage_timeout

    # ---------- request preparation ----------

    async def _load_or_create_user(self, session: AsyncSession, identity: AppUser) -> User:
        repo = UserRepository(session)
        user = await repo.get_by_auth_id(identity.id)
        if user:
            return user

        if not identity.email:
            raise UserNotFoundError()

        if await repo.get_by_email(identity.email):
            raise ValidationError(
                "Email is already registered to another account",
                details={"field": "email"},
            )

        user = await repo.create(
            auth_id=identity.id,
            email=identity.email,
            name=identity.name,
            picture=identity.picture,
        )
        logger.info(f"Created user {identity.id} on first generation")
        return user

    async def _prepare(self, identity: AppUser) -> tuple[UUID, ResolvedCredential]:
        """
        Load the user, enforce the quota and pick the credential.

        Raises:
            QuotaExceededError: Free-tier limit reached
            InvalidCredentialError: Stored own key unusable (it is cleared)
        """
        demoted = False
        async with self._database.session() as session:
            user = await self._load_or_create_user(session, identity)

            decision = self._quota.check_allowed(user)
            if not decision.allowed:
                logger.info(
                    f"Quota exceeded for {user.auth_id}: {decision.used}/{decision.limit} today"
                )
                raise QuotaExceededError(
                    details={"used": decision.used, "limit": decision.limit}
                )

            try:
                credential = self._credentials.resolve(user)
            except InvalidStoredCredential as e:
                logger.warning(f"Clearing unusable stored key for {user.auth_id}: {e}")
                self._credentials.clear(user)
                await UserRepository(session).save(user)
                demoted = True
            else:
                user_id = user.id

        # Raised after the session commits so the demotion is persisted
        if demoted:
            raise InvalidCredentialError()

        logger.info(f"User {identity.id} using {credential.source} credential")
        return user_id, credential

    async def _demote_credential(self, user_id: UUID) -> None:
        async with self._database.session() as session:
            repo = UserRepository(session)
            user = await repo.get_by_id(user_id)
            if user:
                self._credentials.clear(user)
                await repo.save(user)

    # ---------- provider ----------

    async def _call_provider(
        self,
        user_id: UUID,
        credential: ResolvedCredential,
        prompt: str,
        images: list[ImageInput],
        expect_image: bool = True,
    ) -> GenerationResult:
        """Run the provider call and map failures to application errors."""
        request = GenerationRequest(
            prompt=prompt,
            api_key=credential.api_key,
            images=images,
            expect_image=expect_image,
        )
        result = await self._provider.generate(request)

        if result.success:
            return result

        if result.invalid_key:
            if credential.source == CredentialSource.OWN:
                logger.warning(f"Provider rejected own key for user {user_id}; clearing it")
                await self._demote_credential(user_id)
                raise InvalidCredentialError()
            logger.error("Provider rejected the shared API key")
            raise ProviderError()

        if result.timed_out:
            raise GenerationTimeoutError()

        if result.no_output:
            if expect_image:
                raise NoOutputError()
            raise ProviderError("Invalid segmentation response format")

        logger.error(f"Provider call failed ({result.error_type}): {result.error}")
        raise ProviderError(details={"type": result.error_type} if result.error_type else None)

    async def _post_process(self, images: list[bytes], settings: PromptSettings) -> list[bytes]:
        loop = asyncio.get_running_loop()
        processed = []
        for data in images:
            processed.append(
                await loop.run_in_executor(
                    None,
                    normalize_image,
                    data,
                    settings.width,
                    settings.height,
                    self._border_threshold,
                )
            )
        return processed

    # ---------- persistence ----------

    async def _upload(self, data: bytes, folder: str) -> tuple[str | None, str | None]:
        """Upload to durable storage. Returns (url, key), or (None, None) on failure."""
        if self._storage is None:
            return None, None
        content_type = detect_mime_type(data)
        try:
            stored = await asyncio.wait_for(
                self._storage.upload(data, folder, content_type),
                timeout=self._storage_timeout,
            )
        except (StorageError, TimeoutError) as e:
            logger.warning(f"Storage upload failed, storing inline data instead: {e}")
            return None, None
        return stored.url, stored.key

    async def _finalize(
        self,
        user_id: UUID,
        credential: ResolvedCredential,
        images: list[bytes],
        record: dict[str, Any],
        duration: float,
    ) -> GenerationOutcome:
        first = images[0]
        image_url, storage_key = await self._upload(first, f"generations/{user_id}")
        image_data = None if image_url else base64.b64encode(first).decode("ascii")

        async with self._database.session() as session:
            users = UserRepository(session)
            user = await users.get_by_id(user_id)
            if user is None:
                raise UserNotFoundError()

            generation = await GenerationRepository(session).create(
                user_id=user.id,
                auth_id=user.auth_id,
                image_url=image_url,
                storage_key=storage_key,
                image_data=image_data,
                model=self._provider.default_model,
                credential_source=credential.source.value,
                duration=duration,
                **record,
            )

            self._quota.record_generation(user, credential.source)
            await users.save(user)
            decision = self._quota.check_allowed(user)
            generation_id = generation.id

        logger.info(
            f"Generation {generation_id} completed for {record.get('prompt', '')[:50]!r} "
            f"in {duration:.2f}s ({credential.source})"
        )
        return GenerationOutcome(
            generation_id=generation_id,
            images=[base64.b64encode(img).decode("ascii") for img in images],
            image_url=image_url,
            credential_source=credential.source,
            quota=decision,
            duration=duration,
        )

    async def _run(
        self,
        identity: AppUser,
        prompt: str,
        images: list[ImageInput],
        settings: PromptSettings,
        record: dict[str, Any],
    ) -> GenerationOutcome:
        start_time = time.time()
        user_id, credential = await self._prepare(identity)

        result = await self._call_provider(user_id, credential, prompt, images)
        if not result.images:
            raise NoOutputError()

        processed = await self._post_process(result.images, settings)
        duration = time.time() - start_time

        return await asyncio.shield(
            self._finalize(user_id, credential, processed, record, duration)
        )

    @staticmethod
    def _settings_record(settings: PromptSettings, **extra: Any) -> dict[str, Any]:
        data = {k: v for k, v in asdict(settings).items() if v is not None}
        data.update({k: v for k, v in extra.items() if v})
        return data

    # ---------- operations ----------

    async def generate(
        self,
        identity: AppUser,
        prompt: str,
        settings: PromptSettings | None = None,
        reference_images: list[str] | None = None,
        negative_prompt: str | None = None,
    ) -> GenerationOutcome:
        """
        Generate an image from a prompt.

        Args:
            identity: Caller identity from the gateway
            prompt: User prompt
            settings: Temperature, seed and target size
            reference_images: Base64 images or data URLs sent after the prompt
            negative_prompt: Stored with the record
        """
        settings = settings or PromptSettings()
        references = [
            ImageInput.from_base64(image, "reference_images") for image in reference_images or []
        ]
        text = build_generation_prompt(prompt, settings)

        return await self._run(
            identity,
            text,
            references,
            settings,
            record={
                "prompt": prompt,
                "negative_prompt": negative_prompt,
                "settings": self._settings_record(
                    settings, reference_images=len(references)
                ),
                "is_edit": False,
            },
        )

    async def edit(
        self,
        identity: AppUser,
        original_image: str,
        instruction: str,
        settings: PromptSettings | None = None,
        mask_image: str | None = None,
        reference_images: list[str] | None = None,
    ) -> GenerationOutcome:
        """
        Edit an existing image.

        Parts are sent as: instruction text, original image, reference images,
        then the mask.
        """
        settings = settings or PromptSettings()
        images = [ImageInput.from_base64(original_image, "original_image")]
        images.extend(
            ImageInput.from_base64(image, "reference_images") for image in reference_images or []
        )
        if mask_image:
            images.append(ImageInput.from_base64(mask_image, "mask_image"))

        text = build_edit_prompt(instruction, settings, has_mask=bool(mask_image))

        return await self._run(
            identity,
            text,
            images,
            settings,
            record={
                "prompt": instruction,
                "edit_instruction": instruction,
                "mask_data": mask_image,
                "settings": self._settings_record(
                    settings, reference_images=len(reference_images or [])
                ),
                "is_edit": True,
            },
        )

    async def segment(self, identity: AppUser, image: str, query: str) -> SegmentationResult:
        """
        Ask the provider for segmentation masks.

        Quota-checked like a generation but not counted and not recorded.
        """
        decoded = ImageInput.from_base64(image, "image")
        user_id, credential = await self._prepare(identity)

        result = await self._call_provider(
            user_id,
            credential,
            build_segmentation_prompt(query),
            [decoded],
            expect_image=False,
        )
        return self._parse_segmentation(result.text_response or "")

    @staticmethod
    def _parse_segmentation(text: str) -> SegmentationResult:
        cleaned = text.strip()
        match = _CODE_FENCE.match(cleaned)
        if match:
            cleaned = match.group(1)

        try:
            payload = json.loads(cleaned)
            masks = [
                SegmentationMask(
                    label=str(item.get("label", "")),
                    box_2d=list(item.get("box_2d") or []),
                    mask=str(item.get("mask", "")),
                )
                for item in payload["masks"]
            ]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to parse segmentation response: {text[:500]}")
            raise ProviderError("Invalid segmentation response format") from e

        logger.info(f"Segmentation returned {len(masks)} mask(s)")
        return SegmentationResult(masks=masks)

    # ---------- history ----------

    async def _require_user(self, session: AsyncSession, subject_id: str) -> User:
        user = await UserRepository(session).get_by_auth_id(subject_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def list_history(self, subject_id: str, limit: int = 10, offset: int = 0) -> HistoryPage:
        """List a user's generations, newest first."""
        async with self._database.session() as session:
            user = await self._require_user(session, subject_id)
            repo = GenerationRepository(session)
            items = await repo.list_for_user(user.id, limit=limit, offset=offset)
            total = await repo.count_for_user(user.id)

        logger.info(f"Found {len(items)} of {total} generations for {subject_id}")
        return HistoryPage(items=items, total=total, limit=limit, offset=offset)

    async def get_generation(self, subject_id: str, generation_id: UUID) -> Generation:
        """Get one generation owned by the user."""
        async with self._database.session() as session:
            user = await self._require_user(session, subject_id)
            generation = await GenerationRepository(session).get_for_user(generation_id, user.id)
            if not generation:
                raise GenerationNotFoundError()
            return generation

    async def delete_generation(self, subject_id: str, generation_id: UUID) -> None:
        """Delete a generation and, best-effort, its stored image."""
        async with self._database.session() as session:
            user = await self._require_user(session, subject_id)
            repo = GenerationRepository(session)
            generation = await repo.get_for_user(generation_id, user.id)
            if not generation:
                raise GenerationNotFoundError()

            if generation.storage_key and self._storage is not None:
                try:
                    deleted = await asyncio.wait_for(
                        self._storage.delete(generation.storage_key),
                        timeout=self._storage_timeout,
                    )
                    if not deleted:
                        logger.warning(f"Stored image {generation.storage_key} was not deleted")
                except TimeoutError:
                    logger.warning(f"Timed out deleting stored image {generation.storage_key}")

            await repo.delete(generation)

        logger.info(f"Deleted generation {generation_id} for {subject_id}")
