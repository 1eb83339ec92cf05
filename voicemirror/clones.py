"""
Voice clone lifecycle and slot reclamation.

Providers cap how many clones an account may hold, and this deployment
serves a single user, so at most one clone should exist per provider. Clones
are swept before a new one is created, and after a successful synthesis the
used clone is deleted directly and the account is swept for orphans.

Cleanup is hygiene: nothing in here may fail the request that triggered it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from voicemirror.providers import BaseVoiceProvider, Provider

logger = logging.getLogger(__name__)


class CloneState(Enum):
    NONE = "none"
    CREATING = "creating"
    READY = "ready"
    CONSUMED = "consumed"
    RECLAIMING = "reclaiming"


@dataclass(frozen=True)
class VoiceProfile:
    """A clone handed back to the client. The server keeps no copy."""
    voice_id: str
    provider: Provider
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "voice_id": self.voice_id,
            "provider": self.provider.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ReclaimReport:
    voice_id: str
    direct_deleted: bool = False
    swept: int = 0


class CloneLifecycleManager:
    """Creates clones on one provider and gives their slots back."""

    def __init__(self, provider: BaseVoiceProvider):
        self.provider = provider
        self.state = CloneState.NONE

    def _transition(self, state: CloneState, voice_id: Optional[str] = None):
        logger.debug("%s clone %s: %s -> %s", self.provider.provider_name, voice_id or "-", self.state.value, state.value)
        self.state = state

    def create_clone(self, name: str, audio: bytes, filename: str = "voice-sample.wav") -> VoiceProfile:
        """
        Free every slot, then create a new clone.

        Raises:
            UpstreamError: If the provider rejects the clone itself
        """
        self.sweep()
        self._transition(CloneState.CREATING)
        try:
            voice_id = self.provider.clone_voice(name, audio, filename)
        except Exception:
            self._transition(CloneState.NONE)
            raise
        self._transition(CloneState.READY, voice_id)
        return VoiceProfile(voice_id=voice_id, provider=self.provider.provider)

    def mark_consumed(self, voice_id: str):
        self._transition(CloneState.CONSUMED, voice_id)

    def mark_expired(self, voice_id: str):
        """The provider no longer knows the clone; there is nothing left to reclaim."""
        logger.info("%s clone %s reported expired", self.provider.provider_name, voice_id)
        self._transition(CloneState.NONE, voice_id)

    def delete(self, voice_id: str) -> bool:
        """Delete one clone by id. Never raises."""
        try:
            return self.provider.delete_voice(voice_id)
        except Exception as e:
            logger.warning("%s direct-delete %s error (non-fatal): %s", self.provider.provider_name, voice_id, e)
            return False

    def sweep(self, exclude_voice_id: Optional[str] = None) -> int:
        """Delete every clone on the account except ``exclude_voice_id``. Never raises."""
        deleted = 0
        try:
            clones = self.provider.list_clones()
        except Exception as e:
            logger.warning("%s cleanup listing failed (non-fatal): %s", self.provider.provider_name, e)
            return 0

        for voice in clones:
            if voice.voice_id == exclude_voice_id:
                continue
            if self.delete(voice.voice_id):
                deleted += 1

        if deleted:
            logger.info("%s cleanup: deleted %d orphaned clone(s)", self.provider.provider_name, deleted)
        return deleted

    def reclaim(self, voice_id: str) -> ReclaimReport:
        """
        Give back the slot of a clone that has just been used.

        The direct delete covers a clone the list endpoint has not indexed
        yet; the sweep that follows catches orphans from abandoned sessions.
        Both have finished when this returns, so the caller must build its
        response only afterwards.
        """
        self._transition(CloneState.RECLAIMING, voice_id)
        report = ReclaimReport(voice_id=voice_id)
        report.direct_deleted = self.delete(voice_id)
        report.swept = self.sweep()
        self._transition(CloneState.NONE, voice_id)
        return report

