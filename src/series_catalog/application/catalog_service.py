"""Catalog service.

Orchestrates operations that must look atomic even though the record store
only commits whole collections and the blob directory is a separate
resource. Every operation follows the same protocol:

1. validate against a snapshot (no side effects);
2. commit through ``RecordStore.mutate``, re-checking every rule inside the
   mutation so that concurrent callers cannot slip past a stale snapshot;
3. on failure, discard the blobs staged for the call; on success, release
   the blobs the commit made unreachable.

Blobs are released strictly after the commit that drops their last
reference, never before.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Set, TypeVar

from ..domain.access import AccessGate, Action
from ..domain.catalog.entities import Collection, Episode, Series
from ..domain.catalog.repositories import Mutation, RecordStore
from ..domain.catalog.value_objects import BlobHandle, BlobMedia, EpisodeSpec, ExternalMedia, MediaRef
from ..domain.identity import IdGenerator, UuidIdGenerator
from ..domain.result import (
    ConflictError,
    Failure,
    ForbiddenError,
    NotFoundError,
    Result,
    Success,
    ValidationError,
)
from ..events import (
    CoverImageUpdated,
    DomainEvent,
    EpisodeAdded,
    EpisodeDeleted,
    EventBus,
    SeriesCreated,
    SeriesDeleted,
)
from ..exceptions import OrphanCleanupWarning
from ..infrastructure.storage.blob_manager import BlobLifecycleManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """A committed change plus any non-fatal file cleanup problems."""

    value: T
    warnings: List[OrphanCleanupWarning] = field(default_factory=list)

    @property
    def cleanup_failed(self) -> bool:
        return bool(self.warnings)


def default_episode_title(ordinal: int) -> str:
    return f"Episode {ordinal}"


class CatalogService:
    """Creates, extends and deletes series while keeping blobs consistent."""

    def __init__(self,
                 store: RecordStore,
                 blobs: BlobLifecycleManager,
                 access_gate: AccessGate,
                 id_generator: Optional[IdGenerator] = None,
                 event_bus: Optional[EventBus] = None):
        self.store = store
        self.blobs = blobs
        self.access_gate = access_gate
        self.id_generator = id_generator or UuidIdGenerator()
        self.event_bus = event_bus

    # Reads

    def list_series(self) -> List[Series]:
        return list(self.store.snapshot())

    def get_series(self, series_id: str) -> Result[Series, NotFoundError]:
        series = self.store.snapshot().find(series_id)
        if series is None:
            return Failure(NotFoundError(f"Series {series_id} not found"))
        return Success(series)

    def referenced_blob_paths(self) -> Set[str]:
        return self.store.snapshot().blob_paths()

    # Creation

    async def create_series(self, name: str, description: str, owner_handle: str,
                            cover_image: Optional[MediaRef] = None) -> Result[Series, Exception]:
        return await self.create_series_with_episodes(
            name, description, owner_handle, [], {}, cover_image=cover_image
        )

    async def create_series_with_episodes(self,
                                          name: str,
                                          description: str,
                                          owner_handle: str,
                                          episode_specs: Sequence[EpisodeSpec],
                                          uploaded_blobs: Mapping[str, BlobHandle],
                                          cover_image: Optional[MediaRef] = None) -> Result[Series, Exception]:
        """Create a series and its episodes in one commit.

        ``uploaded_blobs`` maps upload keys to blobs the transport already
        staged for this call. Whatever the outcome, none of them is left on
        disk unless a committed record references it.
        """
        staged: List[BlobHandle] = list(uploaded_blobs.values())
        if isinstance(cover_image, BlobMedia):
            staged.append(cover_image)

        validated = self._validate_new_series(name, owner_handle, episode_specs, uploaded_blobs)
        if validated.is_failure():
            logger.info(f"Rejected series {name!r}: {validated.error()}")
            await self._rollback(staged)
            return Failure(validated.error())
        media_list = validated.value()
        unavailable = await self._check_blobs([*media_list, cover_image])
        if unavailable is not None:
            logger.info(f"Rejected series {name!r}: {unavailable}")
            await self._rollback(staged)
            return Failure(unavailable)

        series_id = self.id_generator.new_id()
        series = Series(
            id=series_id,
            name=name.strip(),
            description=(description or "").strip(),
            cover_image=cover_image,
            owner_handle=owner_handle,
        )
        for ordinal, (spec, media) in enumerate(zip(episode_specs, media_list), start=1):
            episode = Episode(
                id=f"{series_id}-{ordinal}",
                title=(spec.title or "").strip() or default_episode_title(ordinal),
                media=media,
                owner_handle=owner_handle,
                parent_series_id=series_id,
            )
            series.append_episode(episode, ordinal)

        def add_series(collection: Collection) -> Result[Collection, Exception]:
            if collection.name_taken(series.name):
                return Failure(ConflictError(f"A series named {series.name!r} already exists"))
            if collection.find(series.id) is not None:
                return Failure(ConflictError(f"Series id {series.id} already exists"))
            collection.add(series)
            return Success(collection)

        committed = await self._commit(add_series, staged, f"create series {series.name!r}")
        if committed.is_failure():
            return Failure(committed.error())

        used_keys = {spec.upload_key for spec in episode_specs if spec.has_upload}
        unused = [handle for key, handle in uploaded_blobs.items() if key not in used_keys]
        if unused:
            logger.info(f"Discarding {len(unused)} upload(s) no episode referenced")
            await self._rollback(unused)

        created = committed.value().find(series_id)
        logger.info(f"Created series {created.id} {created.name!r} with {len(created.episodes)} episode(s)")
        await self._publish(SeriesCreated(
            series_id=created.id,
            name=created.name,
            owner_handle=created.owner_handle,
            episode_ids=[episode.id for episode in created.episodes],
        ))
        return Success(created)

    async def add_episode(self, series_id: str, title: Optional[str], media: Optional[MediaRef],
                          owner_handle: Optional[str] = None) -> Result[Episode, Exception]:
        """Append an episode; a blob passed in ``media`` is discarded on failure."""
        staged = [media] if isinstance(media, BlobMedia) else []

        if media is None:
            return Failure(ValidationError("An uploaded file or a URL is required"))
        if self.store.snapshot().find(series_id) is None:
            await self._rollback(staged)
            return Failure(NotFoundError(f"Series {series_id} not found"))
        unavailable = await self._check_blobs([media])
        if unavailable is not None:
            await self._rollback(staged)
            return Failure(unavailable)

        added: List[Episode] = []

        def append(collection: Collection) -> Result[Collection, Exception]:
            target = collection.find(series_id)
            if target is None:
                return Failure(NotFoundError(f"Series {series_id} not found"))

            ordinal = target.next_ordinal()
            episode = Episode(
                id=f"{target.id}-{ordinal}",
                title=(title or "").strip() or default_episode_title(ordinal),
                media=media,
                owner_handle=owner_handle or target.owner_handle,
                parent_series_id=target.id,
            )
            target.append_episode(episode, ordinal)
            added.append(episode)
            return Success(collection)

        committed = await self._commit(append, staged, f"add episode to {series_id}")
        if committed.is_failure():
            return Failure(committed.error())

        episode = added[-1]
        logger.info(f"Added episode {episode.id} {episode.title!r}")
        await self._publish(EpisodeAdded(
            series_id=series_id,
            episode_id=episode.id,
            title=episode.title,
            media_kind="blob" if isinstance(media, BlobMedia) else "external",
        ))
        return Success(episode)

    # Updates

    async def update_cover_image(self, series_id: str,
                                 new_image: Optional[MediaRef]) -> Result[Outcome[Series], Exception]:
        """Install a new cover image, then release the previous blob."""
        staged = [new_image] if isinstance(new_image, BlobMedia) else []

        if self.store.snapshot().find(series_id) is None:
            await self._rollback(staged)
            return Failure(NotFoundError(f"Series {series_id} not found"))
        unavailable = await self._check_blobs([new_image])
        if unavailable is not None:
            await self._rollback(staged)
            return Failure(unavailable)

        previous: List[Optional[MediaRef]] = []

        def replace_cover(collection: Collection) -> Result[Collection, Exception]:
            target = collection.find(series_id)
            if target is None:
                return Failure(NotFoundError(f"Series {series_id} not found"))
            previous.append(target.cover_image)
            target.cover_image = new_image
            return Success(collection)

        committed = await self._commit(replace_cover, staged, f"update cover of {series_id}")
        if committed.is_failure():
            return Failure(committed.error())

        old_image = previous[-1]
        warnings = await self._release_unreferenced([old_image] if old_image is not None else [],
                                                    committed.value())
        series = committed.value().find(series_id)
        await self._publish(CoverImageUpdated(
            series_id=series_id,
            previous=str(old_image) if old_image is not None else None,
            current=str(new_image) if new_image is not None else None,
        ))
        return Success(Outcome(series, warnings))

    # Deletion

    async def delete_episode(self, series_id: str, episode_id: str,
                             subject_handle: str) -> Result[Outcome[Episode], Exception]:
        series = self.store.snapshot().find(series_id)
        if series is None:
            return Failure(NotFoundError(f"Series {series_id} not found"))
        episode = series.find_episode(episode_id)
        if episode is None:
            return Failure(NotFoundError(f"Episode {episode_id} not found"))
        if not self.access_gate.is_authorized(subject_handle, Action.DELETE_EPISODE, episode):
            return Failure(ForbiddenError(f"{subject_handle!r} may not delete episode {episode_id}"))

        removed: List[Episode] = []

        def remove(collection: Collection) -> Result[Collection, Exception]:
            target = collection.find(series_id)
            if target is None:
                return Failure(NotFoundError(f"Series {series_id} not found"))
            gone = target.remove_episode(episode_id)
            if gone is None:
                return Failure(NotFoundError(f"Episode {episode_id} not found"))
            removed.append(gone)
            return Success(collection)

        committed = await self._commit(remove, [], f"delete episode {episode_id}")
        if committed.is_failure():
            return Failure(committed.error())

        gone = removed[-1]
        warnings = await self._release_unreferenced([gone.media], committed.value())
        logger.info(f"{subject_handle} deleted episode {episode_id} from series {series_id}")
        await self._publish(EpisodeDeleted(
            series_id=series_id,
            episode_id=episode_id,
            deleted_by=subject_handle,
            released_blobs=_blob_names([gone.media]),
        ))
        return Success(Outcome(gone, warnings))

    async def delete_series(self, series_id: str,
                            subject_handle: str) -> Result[Outcome[Series], Exception]:
        """Delete a series, its episodes, and every blob they exclusively own."""
        series = self.store.snapshot().find(series_id)
        if series is None:
            return Failure(NotFoundError(f"Series {series_id} not found"))
        if not self.access_gate.is_authorized(subject_handle, Action.DELETE_SERIES, series):
            return Failure(ForbiddenError(f"{subject_handle!r} may not delete series {series_id}"))

        removed: List[Series] = []

        def remove(collection: Collection) -> Result[Collection, Exception]:
            gone = collection.remove(series_id)
            if gone is None:
                return Failure(NotFoundError(f"Series {series_id} not found"))
            removed.append(gone)
            return Success(collection)

        committed = await self._commit(remove, [], f"delete series {series_id}")
        if committed.is_failure():
            return Failure(committed.error())

        gone = removed[-1]
        warnings = await self._release_unreferenced(gone.media_refs(), committed.value())
        logger.info(f"{subject_handle} deleted series {series_id} {gone.name!r} "
                    f"({len(gone.episodes)} episode(s))")
        await self._publish(SeriesDeleted(
            series_id=series_id,
            name=gone.name,
            deleted_by=subject_handle,
            episode_count=len(gone.episodes),
            released_blobs=_blob_names(gone.media_refs()),
        ))
        return Success(Outcome(gone, warnings))

    # Maintenance

    async def collect_orphans(self, grace_seconds: float = 3600.0, dry_run: bool = False) -> List[str]:
        """Remove blob files left behind by a crash between staging and commit."""
        return await self.blobs.sweep_orphans(self.referenced_blob_paths(),
                                              grace_seconds=grace_seconds, dry_run=dry_run)

    # Internals

    def _validate_new_series(self, name: str, owner_handle: str,
                             episode_specs: Sequence[EpisodeSpec],
                             uploaded_blobs: Mapping[str, BlobHandle]) -> Result[List[MediaRef], Exception]:
        if not name or not name.strip():
            return Failure(ValidationError("Series name is required"))
        if not owner_handle or not owner_handle.strip():
            return Failure(ValidationError("Owner is required"))
        if self.store.snapshot().name_taken(name):
            return Failure(ConflictError(f"A series named {name.strip()!r} already exists"))

        media_list: List[MediaRef] = []
        claimed: Dict[str, int] = {}
        for ordinal, spec in enumerate(episode_specs, start=1):
            if spec.has_upload and spec.has_url:
                return Failure(ValidationError(f"Episode {ordinal} has both a file and a URL"))
            if spec.has_upload:
                handle = uploaded_blobs.get(spec.upload_key)
                if handle is None:
                    return Failure(ValidationError(f"Missing uploaded file for episode {ordinal}"))
                if spec.upload_key in claimed:
                    return Failure(ValidationError(
                        f"Episodes {claimed[spec.upload_key]} and {ordinal} share the same upload"
                    ))
                claimed[spec.upload_key] = ordinal
                media_list.append(handle)
            elif spec.has_url:
                media_list.append(ExternalMedia(spec.url.strip()))
            else:
                return Failure(ValidationError(f"Episode {ordinal} needs a file or a URL"))
        return Success(media_list)

    async def _check_blobs(self, refs: Iterable[Optional[MediaRef]]) -> Optional[ValidationError]:
        """Confirm every blob reference names a file in the upload directory."""
        missing = []
        for ref in refs:
            if not isinstance(ref, BlobMedia):
                continue
            try:
                if not await self.blobs.exists(ref):
                    missing.append(ref.path)
            except ValidationError as e:
                return e
        if missing:
            return ValidationError(f"Staged blob(s) missing from storage: {', '.join(missing)}")
        return None

    async def _commit(self, fn: Mutation, staged: Sequence[BlobHandle],
                      label: str) -> Result[Collection, Exception]:
        """Run a mutation; if it does not commit, roll back ``staged``."""
        try:
            result = await self.store.mutate(fn)
        except asyncio.CancelledError:
            logger.warning(f"{label} cancelled, rolling back staged blobs")
            await asyncio.shield(self._rollback(staged))
            raise

        if result.is_failure():
            error = result.error()
            if staged:
                logger.warning(f"{label} failed ({type(error).__name__}: {error}), "
                               f"rolling back {len(staged)} staged blob(s)")
            else:
                logger.info(f"{label} failed ({type(error).__name__}: {error})")
            await self._rollback(staged)
        return result

    async def _rollback(self, staged: Sequence[BlobHandle]) -> None:
        """Discard staged blobs that no committed record references."""
        if not staged:
            return
        live = self.store.snapshot().blob_paths()
        await self.blobs.discard_all([handle for handle in staged if handle.path not in live])

    async def _release_unreferenced(self, refs: Iterable[MediaRef],
                                    committed: Collection) -> List[OrphanCleanupWarning]:
        live = committed.blob_paths()
        candidates: Dict[str, BlobMedia] = {}
        for ref in refs:
            if isinstance(ref, BlobMedia) and ref.path not in live:
                candidates[ref.path] = ref
        if not candidates:
            return []
        return await self.blobs.release_all(candidates.values())

    async def _publish(self, event: DomainEvent) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)


def _blob_names(refs: Iterable[Optional[MediaRef]]) -> List[str]:
    return [ref.path for ref in refs if isinstance(ref, BlobMedia)]
