"""
YAML-file backed schedule repository.

Stands in for the appointment store and provider persistence of a real
deployment: schedules and bookings are read from one YAML document, and a
schedule replacement rewrites that document with a single atomic rename.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from ..domain.exceptions import ProviderNotFoundError, RepositoryError
from ..domain.models import BookedInterval, ProviderSchedule
from .records import ProviderRecord, ScheduleStore

logger = logging.getLogger(__name__)


class YamlScheduleRepository:
    """
    Repository reading provider schedules and bookings from a YAML file.

    The file is re-read on every call so external edits are picked up.
    """

    def __init__(
        self,
        data_file: Path,
        default_timezone: str = "Europe/Paris",
        default_min_break: int = 0,
    ):
        """
        Initialize the repository.

        Args:
            data_file: Path to the YAML data file
            default_timezone: Timezone for providers that do not declare one
            default_min_break: Break for providers that do not declare one
        """
        self.data_file = Path(data_file)
        self.default_timezone = default_timezone
        self.default_min_break = default_min_break

    def load_store(self) -> ScheduleStore:
        """
        Load and validate the whole data file.

        Raises:
            RepositoryError: If the file is missing, unreadable or malformed
        """
        if not self.data_file.exists():
            raise RepositoryError(f"Data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise RepositoryError(f"Could not read {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise RepositoryError("Data file must contain a mapping at the root level.")

        try:
            return ScheduleStore(**data)
        except ValidationError as exc:
            raise RepositoryError(f"Invalid data in {self.data_file}: {exc}") from exc

    def provider_ids(self) -> List[str]:
        return [provider.id for provider in self.load_store().providers]

    async def get_schedule(self, provider_id: str) -> Optional[ProviderSchedule]:
        record = self.load_store().find_provider(provider_id)
        if record is None:
            return None
        return record.to_domain(self.default_timezone, self.default_min_break)

    async def replace_schedule(self, provider_id: str, schedule: ProviderSchedule) -> None:
        """Swap in a provider's new schedule and rewrite the file atomically."""
        store = self.load_store()

        for index, provider in enumerate(store.providers):
            if provider.id == provider_id:
                store.providers[index] = ProviderRecord.from_domain(provider_id, schedule)
                break
        else:
            raise ProviderNotFoundError(provider_id)

        self._write_atomically(store)
        logger.info("Wrote schedule for provider %s to %s", provider_id, self.data_file)

    async def list_bookings(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[BookedInterval]:
        """
        Return the provider's bookings overlapping ``[start, end)``.

        Either bound may be omitted.

        Raises:
            RepositoryError: If a stored booking does not end after it starts
        """
        store = self.load_store()
        record = store.find_provider(provider_id)
        timezone = (record.timezone if record else None) or self.default_timezone

        bookings: List[BookedInterval] = []

        for booking in store.bookings:
            if booking.provider_id != provider_id:
                continue

            try:
                interval = booking.to_domain(timezone)
            except ValueError as exc:
                raise RepositoryError(
                    f"Invalid booking for {provider_id} in {self.data_file}: {exc}"
                ) from exc

            if start is not None and interval.end <= start:
                continue
            if end is not None and interval.start >= end:
                continue

            bookings.append(interval)

        bookings.sort(key=lambda interval: interval.start)
        return bookings

    def _write_atomically(self, store: ScheduleStore) -> None:
        payload = store.model_dump(mode="json", exclude_none=True)
        directory = self.data_file.parent

        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".", suffix=".yaml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)
            os.replace(tmp_name, self.data_file)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise RepositoryError(f"Could not write {self.data_file}: {exc}") from exc
