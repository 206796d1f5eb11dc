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

from subprocess import check_output, CalledProcessError
import os
import json

# PID file management ---------------------------------------
#
APPINDICATOR_ID = "com.nube.indicator"
PID_PATH = "/tmp/" + APPINDICATOR_ID
PID_FILE = PID_PATH + "/nube.pid"

def create_pid_file(pid_file:str=PID_FILE):
	open_flags = (os.O_CREAT | os.O_EXCL | os.O_WRONLY)
	open_mode = 0o644
	pidfile_fd = os.open(pid_file, open_flags, open_mode)
	with os.fdopen(pidfile_fd, "w") as pidfile:
		pidfile.write("%s\n" % os.getpid())

def remove_pid_file(pid_file:str=PID_FILE):
	try:
		os.remove(pid_file)
	except FileNotFoundError:
		pass

def is_unique(pid_file:str=PID_FILE):
	pid_path = os.path.dirname(pid_file)
	try:
		# No directory
		if not os.path.exists(pid_path):
			os.mkdir(pid_path)

		# No PID file
		if not os.path.exists(pid_file):
			create_pid_file(pid_file)

		# PID file exists, check if the process is still alive
		else:
			try:
				check_output(["pgrep", "-F", pid_file])
				# Zero pgrep return code, another nube process is alive
				return False
			except CalledProcessError:
				# Non-zero return code means this is a stale PID file,
				# recreate it with our PID
				remove_pid_file(pid_file)
				create_pid_file(pid_file)

		# Sure we are the unique nube instance
		return True

	except OSError:
		return False

# This exception is thrown if we try and launch a second
# instance of nube
class NBNotUnique(Exception):
	pass



# Settings management ---------------------------------------
#

# This exception is thrown if we meet anything strange in
# the settings file
class NBInvalidSettings(Exception):
	pass

SETTINGS_FILE = os.path.join(
	os.path.expanduser("~"), ".config", "nube", "nube.cfg")

DEFAULT_CLOUD_ROOT = os.path.join(
	os.path.expanduser("~"), "Library", "Mobile Documents", "com~apple~CloudDocs")

# Automatic check interval in seconds while syncing
UPDATE_INTERVAL_PS = 10
UPDATE_INTERVAL_MD = 5
UPDATE_INTERVAL_HG = 2

# Folders in status reports are given relative to the cloud root
def resolve_location(cloud_root:str, relative_path:str):
	return os.path.join(cloud_root, relative_path.lstrip("/"))

def interval_for(frequency:str):
	match frequency:
		case "power_saver":
			return UPDATE_INTERVAL_PS
		case "medium":
			return UPDATE_INTERVAL_MD
		case "high":
			return UPDATE_INTERVAL_HG
		case _:
			raise NBInvalidSettings(frequency)

class NBSettings:

	__valid_frequency = ["power_saver", "medium", "high"]

	def __init__(self, sfile:str=SETTINGS_FILE, load:bool=True):
		self.__sfile = sfile
		self.__settings = {
			"frequency": "medium",
			"cloud_root": DEFAULT_CLOUD_ROOT
		}
		if load:
			self.read_settings()

	def get_frequency(self):
		return self.__settings["frequency"]

	def get_interval(self):
		return interval_for(self.__settings["frequency"])

	def get_cloud_root(self):
		return self.__settings["cloud_root"]

	def has_cloud_root(self):
		return os.path.isdir(self.__settings["cloud_root"])

	def set_frequency(self, frequency:str):
		if frequency not in self.__valid_frequency:
			raise NBInvalidSettings(frequency)
		self.__settings["frequency"] = frequency
		self.save_settings()

	def set_cloud_root(self, cloud_root:str):
		if not isinstance(cloud_root, str) or cloud_root == "":
			raise NBInvalidSettings(cloud_root)
		self.__settings["cloud_root"] = cloud_root
		self.save_settings()

	def read_settings(self):
		# If the settings file cannot be read we satisfy ourselves
		# with the defaults. This is the case of fresh installation
		# for instance
		try:
			with open(self.__sfile, "r") as s:
				settings = json.load(s)
		except OSError:
			return
		except ValueError as e:
			raise NBInvalidSettings(self.__sfile) from e

		if type(settings) is not dict:
			raise NBInvalidSettings(self.__sfile)

		if "frequency" in settings:
			if settings["frequency"] in self.__valid_frequency:
				self.__settings["frequency"] = settings["frequency"]
			else:
				raise NBInvalidSettings(settings["frequency"])

		if "cloud_root" in settings:
			if isinstance(settings["cloud_root"], str) and settings["cloud_root"] != "":
				self.__settings["cloud_root"] = os.path.expanduser(settings["cloud_root"])
			else:
				raise NBInvalidSettings(settings["cloud_root"])

	def save_settings(self):
		# If settings cannot be saved (corrupt directory tree?),
		# it is not a big deal, so just return silently
		try:
			os.makedirs(os.path.dirname(self.__sfile), exist_ok=True)
			with open(self.__sfile, "w") as s:
				json.dump(self.__settings, s)
		except OSError:
			return
