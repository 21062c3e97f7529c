"""
YAML file store for tournament brackets.

Each tournament lives in ``<data_dir>/<tournament_id>.yaml`` next to a
version counter. Writes run under a file lock and compare the version the
caller loaded with the stored one, so two concurrent updates cannot silently
overwrite each other: the second one gets a VersionConflict and must reload.
"""
import logging
import os
import re
from datetime import datetime
from typing import List, Optional, Tuple

import yaml
from filelock import FileLock, Timeout

from .errors import StorageError, TournamentBusy, TournamentNotFound, VersionConflict
from .models import Bracket
from .standings import find_champion

logger = logging.getLogger(__name__)

SETUP = 'setup'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'


def slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = (name or '').lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def tournament_status(bracket: Bracket) -> str:
    if find_champion(bracket) is not None:
        return COMPLETED
    if bracket.results:
        return IN_PROGRESS
    return SETUP


class BracketStore:
    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout

    def _path(self, tournament_id: str) -> str:
        if slugify(tournament_id) != tournament_id:
            raise TournamentNotFound(f"Invalid tournament id '{tournament_id}'", tournament_id=tournament_id)
        return os.path.join(self.data_dir, f"{tournament_id}.yaml")

    def _lock(self, path: str) -> FileLock:
        return FileLock(path + '.lock', timeout=self.lock_timeout)

    def _read(self, tournament_id: str, path: str) -> dict:
        if not os.path.exists(path):
            raise TournamentNotFound(f"Tournament '{tournament_id}' not found", tournament_id=tournament_id)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                record = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise StorageError(f"Failed to parse {path}: {e}", tournament_id=tournament_id) from e
        if not isinstance(record, dict) or 'bracket' not in record:
            raise StorageError(f"Tournament file {path} has no bracket", tournament_id=tournament_id)
        return record

    def _write(self, path: str, record: dict):
        os.makedirs(self.data_dir, exist_ok=True)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            yaml.dump(record, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        os.replace(tmp_path, path)

    def create(self, name: str, bracket: Bracket, tournament_id: Optional[str] = None) -> dict:
        """Store a new tournament and return its record (version 1)."""
        base = slugify(tournament_id or name)
        os.makedirs(self.data_dir, exist_ok=True)
        try:
            with self._lock(os.path.join(self.data_dir, '.create')):
                slug = base
                counter = 2
                while os.path.exists(self._path(slug)):
                    slug = f"{base}-{counter}"
                    counter += 1
                now = datetime.now().isoformat()
                record = {
                    'id': slug,
                    'name': name or slug,
                    'format': bracket.format,
                    'status': tournament_status(bracket),
                    'version': 1,
                    'created': now,
                    'updated': now,
                    'bracket': bracket.to_dict(),
                }
                self._write(self._path(slug), record)
        except Timeout as e:
            raise TournamentBusy("Tournament store is busy") from e
        logger.info("Created tournament %s (%s)", slug, bracket.format)
        return record

    def load(self, tournament_id: str) -> Tuple[Bracket, dict]:
        """Return the bracket and the raw record (which carries ``version``)."""
        record = self._read(tournament_id, self._path(tournament_id))
        return Bracket.from_dict(record['bracket']), record

    def save(self, tournament_id: str, bracket: Bracket, expected_version: Optional[int]) -> dict:
        """
        Replace the stored bracket if nobody changed it since ``expected_version``.

        Raises VersionConflict when the stored version differs.
        """
        path = self._path(tournament_id)
        try:
            with self._lock(path):
                record = self._read(tournament_id, path)
                current = record.get('version', 0)
                if expected_version is None or int(expected_version) != current:
                    raise VersionConflict(
                        f"Tournament '{tournament_id}' is at version {current}, not {expected_version}",
                        tournament_id=tournament_id, current_version=current,
                        expected_version=expected_version,
                    )
                record['bracket'] = bracket.to_dict()
                record['status'] = tournament_status(bracket)
                record['version'] = current + 1
                record['updated'] = datetime.now().isoformat()
                self._write(path, record)
        except Timeout as e:
            raise TournamentBusy(f"Tournament '{tournament_id}' is busy", tournament_id=tournament_id) from e
        logger.debug("Saved tournament %s at version %d", tournament_id, record['version'])
        return record

    def list(self) -> List[dict]:
        """Summaries of every stored tournament, sorted by id."""
        if not os.path.isdir(self.data_dir):
            return []
        summaries = []
        for filename in sorted(os.listdir(self.data_dir)):
            if not filename.endswith('.yaml'):
                continue
            tournament_id = filename[:-len('.yaml')]
            try:
                record = self._read(tournament_id, os.path.join(self.data_dir, filename))
            except StorageError as e:
                logger.warning("Skipping %s: %s", filename, e)
                continue
            summaries.append({key: record.get(key) for key in
                              ('id', 'name', 'format', 'status', 'version', 'created', 'updated')})
        return summaries

    def delete(self, tournament_id: str):
        path = self._path(tournament_id)
        try:
            with self._lock(path):
                if not os.path.exists(path):
                    raise TournamentNotFound(f"Tournament '{tournament_id}' not found",
                                             tournament_id=tournament_id)
                os.remove(path)
        except Timeout as e:
            raise TournamentBusy(f"Tournament '{tournament_id}' is busy", tournament_id=tournament_id) from e
        if os.path.exists(path + '.lock'):
            os.remove(path + '.lock')
        logger.info("Deleted tournament %s", tournament_id)
