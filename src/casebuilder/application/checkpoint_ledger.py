"""Bounded, newest-first history of workflow model snapshots.

The ledger lives in session-scoped storage under
``workflow_checkpoints_<caseId>`` so history survives a reload of the editor
but not the end of the session.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from casebuilder.domain.exceptions import (
    CaseBuilderError,
    ConfirmationRequired,
    NotFoundError,
)
from casebuilder.domain.models import Checkpoint, WorkflowModel
from casebuilder.domain.validation import model_from_dict

if TYPE_CHECKING:
    from casebuilder.domain.interfaces import SessionStoreInterface

logger = logging.getLogger(__name__)

CHECKPOINTS_STORAGE_KEY = "workflow_checkpoints_"
MAX_CHECKPOINTS = 10

RESTORE_CONFIRMATION = (
    "Are you sure you want to restore this checkpoint? "
    "All changes after this point will be lost."
)
CLEAR_CONFIRMATION = (
    "Are you sure you want to clear all changes history? This cannot be undone."
)


def checkpoint_to_dict(checkpoint: Checkpoint) -> dict[str, Any]:
    return {
        "id": checkpoint.id,
        "timestamp": checkpoint.timestamp,
        "description": checkpoint.description,
        "model": checkpoint.model.to_dict(),
    }


def checkpoint_from_dict(data: dict[str, Any]) -> Checkpoint:
    return Checkpoint(
        id=int(data["id"]),
        timestamp=str(data["timestamp"]),
        description=str(data.get("description", "")),
        model=model_from_dict(data.get("model") or {}),
    )


class CheckpointLedger:
    """Newest-first list of at most ``max_entries`` checkpoints for one case.

    Loaded once from the session store at construction and written back on
    every change.
    """

    def __init__(
        self,
        case_id: int,
        session_store: SessionStoreInterface,
        max_entries: int = MAX_CHECKPOINTS,
    ) -> None:
        """Initialize the ledger.

        Args:
            case_id: Case whose history this ledger holds.
            session_store: Session-scoped key/value storage.
            max_entries: Upper bound on retained checkpoints.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._case_id = case_id
        self._store = session_store
        self._max_entries = max_entries
        self._entries: list[Checkpoint] = self._load()

    @property
    def storage_key(self) -> str:
        return f"{CHECKPOINTS_STORAGE_KEY}{self._case_id}"

    @property
    def entries(self) -> tuple[Checkpoint, ...]:
        """Checkpoints, newest first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self) -> list[Checkpoint]:
        raw = self._store.get_item(self.storage_key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            entries = [checkpoint_from_dict(item) for item in data]
        except (json.JSONDecodeError, TypeError, KeyError, ValueError, CaseBuilderError) as err:
            logger.warning("Discarding unreadable checkpoint history %s: %s", self.storage_key, err)
            return []
        return entries[: self._max_entries]

    def _save(self) -> None:
        if not self._entries:
            self._store.remove_item(self.storage_key)
            return
        self._store.set_item(
            self.storage_key,
            json.dumps([checkpoint_to_dict(c) for c in self._entries]),
        )

    def add(self, description: str, model: WorkflowModel) -> Checkpoint:
        """Record a snapshot as the newest entry, evicting the oldest beyond the bound."""
        checkpoint = Checkpoint(
            id=uuid.uuid4().int,
            timestamp=datetime.now(UTC).isoformat(),
            description=description,
            model=model,
        )
        self._entries = [checkpoint, *self._entries][: self._max_entries]
        self._save()
        logger.debug("Checkpoint recorded: %s", description)
        return checkpoint

    def get(self, checkpoint_id: int) -> Checkpoint:
        """
        Raises:
            NotFoundError: If no retained checkpoint has this id.
        """
        for checkpoint in self._entries:
            if checkpoint.id == checkpoint_id:
                return checkpoint
        raise NotFoundError("Checkpoint", checkpoint_id)

    def restore(self, checkpoint_id: int, confirmed: bool = False) -> WorkflowModel:
        """Return a checkpoint's model and drop every newer entry.

        The restored checkpoint stays in the ledger as the new head.

        Args:
            checkpoint_id: Checkpoint to restore.
            confirmed: Caller obtained the user's confirmation.

        Returns:
            The snapshot stored in the checkpoint.

        Raises:
            ConfirmationRequired: If ``confirmed`` is False.
            NotFoundError: If the checkpoint is unknown.
        """
        if not confirmed:
            raise ConfirmationRequired(RESTORE_CONFIRMATION)
        checkpoint = self.get(checkpoint_id)
        index = self._entries.index(checkpoint)
        self._entries = self._entries[index:]
        self._save()
        logger.info("Restored checkpoint '%s' (%d discarded)", checkpoint.description, index)
        return checkpoint.model

    def discard(self, checkpoint_id: int) -> None:
        """Remove one checkpoint, e.g. the one recorded for a mutation that failed."""
        remaining = [c for c in self._entries if c.id != checkpoint_id]
        if len(remaining) != len(self._entries):
            self._entries = remaining
            self._save()

    def revert(self, entries: tuple[Checkpoint, ...]) -> None:
        """Reset history to a previously observed ``entries`` value.

        Used to undo an ``add`` whose mutation failed, including any eviction
        the add caused.
        """
        self._entries = list(entries)[: self._max_entries]
        self._save()

    def clear(self, confirmed: bool = False) -> None:
        """
        Raises:
            ConfirmationRequired: If ``confirmed`` is False.
        """
        if not confirmed:
            raise ConfirmationRequired(CLEAR_CONFIRMATION)
        self._entries = []
        self._save()
