# -*- coding: utf-8 -*-

"""
	This file is part of Nube, cloud sync status indicator.

	Copyright 2025 Dandelion Systems <dandelion.systems@gmail.com>

	Nube is free software; you can redistribute it and/or modify
	it under the terms of the MIT License.

	Nube is distributed in the hope that it will be useful, but
	WITHOUT ANY WARRANTY; without even the implied warranty of
	MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. 
	See the MIT License for more details.

	SPDX-License-Identifier: MIT
"""

from dataclasses import dataclass, field
from enum import Enum
import os
import re

# Line shapes of the status report ---------------------------
#

# `Under /path/to/folder` opens a block describing items of that folder
UNDER_PREFIX = "Under "

# Items in the trash are of no interest
TRASH_PREFIX = "/.Trash"

# Item in transfer. The size of the item is on the line just above
UPLOAD_MARKER = "> upload{"
DOWNLOAD_MARKER = "> download{"

# Present anywhere in the report while there is sync work left to do
ACTIVITY_MARKER = "needs-sync"

# `sz:10.0 MB (10000000)`, the byte count is in the parentheses
SIZE_PATTERN = re.compile(r"sz:\S+(?:[ \t]\S+)?\s+\((\d+)\)")

# Folders not seen for this long (seconds) are forgotten
FOLDER_EXPIRATION = 30 * 60

# Number of recently active folders to show
MAX_ACTIVE_FOLDERS = 5

BYTES_IN_GB = 1e9


class SyncState(Enum):
	IDLE = "idle"
	CHECKING = "checking"
	SYNCING = "syncing"
	ERROR = "error"


def extract_size(line:str):
	"""
	Return the byte count from a `sz:<size> (<bytes>)` fragment
	of the line or None if there is none.
	"""
	m = SIZE_PATTERN.search(line)
	if m is None:
		return None
	try:
		return int(m.group(1))
	except ValueError:
		return None


@dataclass(frozen=True)
class FolderRef:
	name: str
	relative_path: str
	last_seen: float


class FolderRecencyCache:
	"""
	Folders seen in status reports, keyed by the folder name.
	Only expiration removes entries; top() picks the most recent ones.
	"""

	def __init__(self, other=None):
		self.__paths = {}
		self.__seen = {}
		if other is not None:
			for ref in other.top():
				self.__paths[ref.name] = ref.relative_path
				self.__seen[ref.name] = ref.last_seen

	def __len__(self):
		return len(self.__seen)

	def __contains__(self, name):
		return name in self.__seen

	def get(self, name:str):
		if name not in self.__seen:
			return None
		return FolderRef(name, self.__paths[name], self.__seen[name])

	def copy(self):
		return FolderRecencyCache(self)

	def touch(self, name:str, path:str, now:float):
		self.__paths[name] = path
		self.__seen[name] = now

	def expire(self, now:float, window:float=FOLDER_EXPIRATION):
		stale = [n for n, seen in self.__seen.items() if now - seen > window]
		for name in stale:
			del self.__paths[name]
			del self.__seen[name]
		return stale

	def top(self, n:int=None):
		names = sorted(self.__seen, key=lambda x: (-self.__seen[x], x))
		if n is not None:
			names = names[:n]
		return tuple(FolderRef(x, self.__paths[x], self.__seen[x]) for x in names)


@dataclass(frozen=True)
class Snapshot:
	is_active: bool = False
	uploading_files: int = 0
	downloading_files: int = 0
	upload_pending_bytes: int = 0
	download_pending_bytes: int = 0
	active_folders: tuple = ()
	_folders: FolderRecencyCache = field(
		default_factory=FolderRecencyCache, compare=False, repr=False)

	@classmethod
	def empty(cls):
		return cls()

	@property
	def folders(self):
		# Every folder still tracked, not only the visible ones.
		# Callers get their own copy
		return self._folders.copy()

	@property
	def upload_pending_gb(self):
		return self.upload_pending_bytes / BYTES_IN_GB

	@property
	def download_pending_gb(self):
		return self.download_pending_bytes / BYTES_IN_GB


def parse_status(raw:str, previous:Snapshot, now:float):
	"""
	Turn the text of one status report into a Snapshot.

	Transfer counters start from zero on every call. The folder cache
	of `previous` is copied, refreshed with the folders mentioned in
	`raw` and purged of the ones not seen within FOLDER_EXPIRATION.
	"""
	folders = previous.folders
	uploading = downloading = 0
	upload_bytes = download_bytes = 0

	cursor = None
	in_trash = False
	prev_line = ""

	lines = raw.splitlines()
	# Only the blank tail of the report is dropped, a blank line inside
	# it is an ordinary line
	while lines and lines[-1].strip() == "":
		lines.pop()

	for l in lines:
		if l.startswith(UNDER_PREFIX):
			path = l[len(UNDER_PREFIX):].strip()
			if path.startswith("/"):
				cursor = path
				in_trash = path.startswith(TRASH_PREFIX)
				prev_line = l
				continue

		if in_trash:
			prev_line = l
			continue

		if UPLOAD_MARKER in l:
			uploading += 1
			upload_bytes += extract_size(prev_line) or 0
		elif DOWNLOAD_MARKER in l:
			downloading += 1
			download_bytes += extract_size(prev_line) or 0

		if cursor is not None:
			name = os.path.basename(cursor.rstrip("/")) or cursor
			folders.touch(name, cursor, now)

		prev_line = l

	folders.expire(now, FOLDER_EXPIRATION)

	return Snapshot(
		is_active=ACTIVITY_MARKER in raw,
		uploading_files=uploading,
		downloading_files=downloading,
		upload_pending_bytes=upload_bytes,
		download_pending_bytes=download_bytes,
		active_folders=folders.top(MAX_ACTIVE_FOLDERS),
		_folders=folders,
	)
