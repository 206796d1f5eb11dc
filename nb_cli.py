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

from shutil import which
from subprocess import check_output, CalledProcessError, TimeoutExpired
from os import environ

# The command printing the sync client status report
STATUS_COMMAND = ("brctl", "status")

class NoStatusCLI(Exception):
	pass

# This exception is thrown whenever the status command
# did not give us a report we could read
class StatusUnavailable(Exception):
	pass

class CloudStatus:
	# Status command as a list, the executable resolved
	# by `which`
	__cmd = None

	# Seconds to wait for the command, None to wait forever
	__timeout = None

	def __init__(self, command=STATUS_COMMAND, timeout:float=None):
		cli = which(command[0])
		if cli is None:
			raise NoStatusCLI(command[0])
		self.__cmd = [cli] + list(command[1:])
		self.__timeout = timeout

	def fetch(self):
		# Force the C locale so that the report is not translated
		env = dict(environ)
		env["LANG"] = "C.UTF-8"

		try:
			raw = check_output(self.__cmd, env=env, timeout=self.__timeout)
		except CalledProcessError as e:
			raise StatusUnavailable(
				"%s exited with code %d" % (self.__cmd[0], e.returncode)
			) from e
		except TimeoutExpired as e:
			raise StatusUnavailable(
				"%s timed out after %s s" % (self.__cmd[0], self.__timeout)
			) from e
		except OSError as e:
			raise StatusUnavailable(str(e)) from e

		try:
			res = raw.decode("utf-8")
		except UnicodeDecodeError as e:
			raise StatusUnavailable("status report is not valid UTF-8") from e

		if res.strip() == "":
			raise StatusUnavailable("empty status report")
		return res
