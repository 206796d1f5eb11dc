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

import time

from nb_log import log
from nb_status import Snapshot, SyncState, parse_status

# Seconds between automatic checks while syncing
FAST_INTERVAL = 5

# Consecutive failed checks before we show the error state
ERROR_THRESHOLD = 3


class PollController:
	"""
	Decides when to ask the status source for a report and what the
	visible sync state is.

	All methods are expected to run on the main loop. `loop` provides:
	    call_later(seconds, callback) -> handle
	    cancel(handle)
	    call_soon(callback, *args)
	    spawn(target)
	The status source is only ever called from a spawned worker, and
	its result is brought back to the main loop with call_soon().
	"""

	def __init__(self, source, loop, sink=None, interval:float=FAST_INTERVAL,
	             clock=time.time, error_threshold:int=ERROR_THRESHOLD):
		self.__source = source
		self.__loop = loop
		self.__sink = sink
		self.__interval = interval
		self.__clock = clock
		self.__error_threshold = error_threshold

		self.__state = SyncState.IDLE
		self.__snapshot = Snapshot.empty()
		self.__last_checked = None

		# Single-flight flag, set while a worker talks to the source
		self.__in_flight = False
		self.__pre_check_state = SyncState.IDLE
		self.__failures = 0

		# Pending automatic check
		self.__timer = None
		self.__stopped = False

	@property
	def state(self):
		return self.__state

	@property
	def snapshot(self):
		return self.__snapshot

	@property
	def last_checked(self):
		return self.__last_checked

	@property
	def in_flight(self):
		return self.__in_flight

	@property
	def interval(self):
		return self.__interval

	def set_interval(self, interval:float):
		self.__interval = interval
		if self.__timer is not None:
			self.__schedule()

	def poll(self):
		"""
		Check the status now. Does nothing and returns False
		if a check is already running.
		"""
		if self.__in_flight:
			log("poll: check already running, trigger dropped")
			return False

		self.__cancel_timer()
		self.__in_flight = True
		self.__pre_check_state = self.__state
		if self.__state in (SyncState.IDLE, SyncState.ERROR):
			self.__set_state(SyncState.CHECKING)

		self.__loop.spawn(self.__fetch_worker)
		return True

	def set_state(self, state:SyncState):
		# Manual transition. Only the syncing state keeps
		# automatic checks going
		self.__set_state(state)
		if state == SyncState.SYNCING:
			self.__schedule()
		else:
			self.__cancel_timer()

	def stop(self):
		self.__stopped = True
		self.__cancel_timer()

	def __fetch_worker(self):
		# Runs off the main loop
		try:
			raw = self.__source.fetch()
		except Exception as e:
			# StatusUnavailable or a broken source, either way the
			# single-flight flag must be released on the main loop
			self.__loop.call_soon(self.__on_failure, e)
			return
		self.__loop.call_soon(self.__on_report, raw)

	def __on_report(self, raw:str):
		now = self.__clock()
		self.__in_flight = False
		self.__failures = 0
		self.__last_checked = now
		self.__snapshot = parse_status(raw, self.__snapshot, now)

		s = self.__snapshot
		log("check: active=%s up=%d (%d B) down=%d (%d B) folders=%d" % (
			s.is_active, s.uploading_files, s.upload_pending_bytes,
			s.downloading_files, s.download_pending_bytes,
			len(s.active_folders)))

		if s.is_active:
			new_state = SyncState.SYNCING
		else:
			new_state = SyncState.IDLE
		self.__set_state(new_state, force_notify=True)

		if new_state == SyncState.SYNCING:
			self.__schedule()

	def __on_failure(self, error:Exception):
		self.__in_flight = False
		self.__failures += 1
		log("check failed (%d in a row): %s" % (self.__failures, error))

		new_state = self.__pre_check_state
		if new_state == SyncState.CHECKING:
			new_state = SyncState.IDLE
		if self.__failures >= self.__error_threshold:
			new_state = SyncState.ERROR
		self.__set_state(new_state)

		if new_state in (SyncState.SYNCING, SyncState.ERROR):
			self.__schedule()

	def __set_state(self, state:SyncState, force_notify:bool=False):
		changed = state != self.__state
		self.__state = state
		if changed:
			log("state: %s" % state.value)
		if (changed or force_notify) and self.__sink is not None:
			self.__loop.call_soon(
				self.__sink.update,
				self.__state,
				self.__snapshot,
				self.__last_checked
			)

	def __schedule(self):
		self.__cancel_timer()
		if self.__stopped:
			return
		self.__timer = self.__loop.call_later(self.__interval, self.__on_timer)

	def __cancel_timer(self):
		if self.__timer is not None:
			self.__loop.cancel(self.__timer)
			self.__timer = None

	def __on_timer(self):
		self.__timer = None
		self.poll()
