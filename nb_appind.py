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

from gi import require_version

require_version("Gtk", "3.0")
from gi.repository import Gtk
from gi.repository import GLib

try:
	require_version("AppIndicator3", "0.1")
	from gi.repository import AppIndicator3 as AppIndicator
except (ValueError, ImportError):
	require_version("AyatanaAppIndicator3", "0.1")
	from gi.repository import AyatanaAppIndicator3 as AppIndicator

from datetime import datetime
from subprocess import Popen
from threading import Thread
from shutil import which
import sys
import locale
import gettext

from nb_cli import CloudStatus, NoStatusCLI
from nb_config import (
	APPINDICATOR_ID, NBSettings, NBInvalidSettings, NBNotUnique,
	is_unique, remove_pid_file, resolve_location
)
from nb_log import log
from nb_poll import PollController
from nb_status import SyncState


# Translation -----------------------------------------------
#

# Get user interface language
locale.setlocale(locale.LC_ALL, "")
message_language = (locale.getlocale(locale.LC_MESSAGES)[0] or "en")[0:2]

# Install the corresponding translation
lang = gettext.translation(
	domain="messages",
	localedir="locales",
	fallback=True,
	languages=[message_language])
lang.install()
_ = lang.gettext


# Main loop adapter -----------------------------------------
#
class GLibLoop:
	"""
	Runs PollController on the GLib main loop. Status checks go to
	daemon threads, their results come back through idle callbacks.
	"""

	def call_later(self, seconds:float, callback):
		return GLib.timeout_add(int(seconds * 1000), self.__once, callback)

	def cancel(self, handle):
		GLib.source_remove(handle)

	def call_soon(self, callback, *args):
		GLib.idle_add(self.__once, callback, *args, priority=GLib.PRIORITY_HIGH)

	def spawn(self, target):
		Thread(target=target, daemon=True).start()

	def __once(self, callback, *args):
		callback(*args)
		# Returning False removes the GLib source
		return False


# Application menu ------------------------------------------
#
class NBMenu(Gtk.Menu):
	__nbm_sync_status = None
	__nbm_last_checked = None
	__nbm_upload = None
	__nbm_download = None
	__nbm_recent_sub = None

	def __init__(self, frequency:str, menu_actions:dict):
		super().__init__()
		self.__make_menu(frequency, menu_actions)

	def __make_menu(self, frequency:str, ma:dict):
		self.__nbm_sync_status = Gtk.MenuItem(label="")
		self.__nbm_sync_status.set_sensitive(False)
		self.append(self.__nbm_sync_status)

		self.__nbm_last_checked = Gtk.MenuItem(label="")
		self.__nbm_last_checked.set_sensitive(False)
		self.append(self.__nbm_last_checked)

		self.append(Gtk.SeparatorMenuItem.new())

		mi = Gtk.MenuItem(label=_("Network activity"))
		mi.set_sensitive(False)
		self.append(mi)

		self.__nbm_upload = Gtk.MenuItem(label="")
		self.__nbm_upload.set_sensitive(False)
		self.append(self.__nbm_upload)

		self.__nbm_download = Gtk.MenuItem(label="")
		self.__nbm_download.set_sensitive(False)
		self.append(self.__nbm_download)

		recent = Gtk.MenuItem(label=_("Recent folders"))
		self.append(recent)
		self.__nbm_recent_sub = Gtk.Menu()
		recent.set_submenu(self.__nbm_recent_sub)
		self.set_recent([], None)

		self.append(Gtk.SeparatorMenuItem.new())

		mi = Gtk.MenuItem(label=_("Check now"))
		mi.connect("activate", ma["on_check"])
		self.append(mi)

		mi = Gtk.MenuItem(label=_("Open cloud folder"))
		mi.connect("activate", ma["on_cloud_root"])
		self.append(mi)

		preferences = Gtk.MenuItem(label=_("Preferences"))
		self.append(preferences)
		preferences_sub = Gtk.Menu()
		preferences.set_submenu(preferences_sub)

		mi = Gtk.MenuItem(label=_("Update frequency while syncing:"))
		preferences_sub.append(mi)
		mi.set_sensitive(False)

		preferences_sub_power = Gtk.RadioMenuItem.new_with_label(group=None, label=_("Power saver"))
		preferences_sub.append(preferences_sub_power)
		preferences_sub_power.set_draw_as_radio(False)
		group = preferences_sub_power.get_group()

		preferences_sub_medium = Gtk.RadioMenuItem.new_with_label(group=group, label=_("Medium"))
		preferences_sub.append(preferences_sub_medium)
		preferences_sub_medium.set_draw_as_radio(False)

		preferences_sub_high = Gtk.RadioMenuItem.new_with_label(group=group, label=_("High"))
		preferences_sub.append(preferences_sub_high)
		preferences_sub_high.set_draw_as_radio(False)

		# Set the active item before connecting so that
		# no handler fires during construction
		match frequency:
			case "power_saver":
				preferences_sub_power.set_active(True)
			case "medium":
				preferences_sub_medium.set_active(True)
			case "high":
				preferences_sub_high.set_active(True)

		preferences_sub_power.connect("activate", ma["on_frequency"], "power_saver")
		preferences_sub_medium.connect("activate", ma["on_frequency"], "medium")
		preferences_sub_high.connect("activate", ma["on_frequency"], "high")

		preferences_sub.append(Gtk.SeparatorMenuItem.new())

		mi = Gtk.MenuItem(label=_("Choose cloud folder..."))
		mi.connect("activate", ma["on_choose_cloud_root"])
		preferences_sub.append(mi)

		self.append(Gtk.SeparatorMenuItem.new())

		mi = Gtk.MenuItem(label=_("About"))
		mi.connect("activate", ma["on_about"])
		self.append(mi)

		mi = Gtk.MenuItem(label=_("Exit"))
		mi.connect("activate", ma["on_quit"])
		self.append(mi)

	def set_label(self, item:str, label:str):
		match item:
			case "sync_status":
				self.__nbm_sync_status.set_label(label)
			case "last_checked":
				self.__nbm_last_checked.set_label(label)
			case "upload":
				self.__nbm_upload.set_label(label)
			case "download":
				self.__nbm_download.set_label(label)

	def set_recent(self, folders, activation_funct):
		def make_mi_label(s:str, l:int=37):
			if len(s) > l:
				s = "  " + s[0:int((l-7)/2)] + " ... " + s[-int((l-7)/2):]
			else:
				s = "  " + s
			return s

		for mi in self.__nbm_recent_sub.get_children():
			mi.destroy()

		for folder in folders:
			mi = Gtk.MenuItem(label=make_mi_label(folder.name))
			mi.set_tooltip_text(folder.relative_path)
			mi.tag = folder.relative_path
			mi.connect("activate", activation_funct)
			self.__nbm_recent_sub.append(mi)

		if len(folders) == 0:
			none_item = Gtk.MenuItem(label=_("  (none)"))
			none_item.set_sensitive(False)
			self.__nbm_recent_sub.append(none_item)

		self.__nbm_recent_sub.show_all()



# Main application ------------------------------------------
#

STATE_ICONS = {
	SyncState.IDLE: "folder-remote",
	SyncState.CHECKING: "view-refresh",
	SyncState.SYNCING: "emblem-synchronizing",
	SyncState.ERROR: "dialog-error",
}

STATE_LABELS = {
	SyncState.IDLE: _("idle"),
	SyncState.CHECKING: _("checking"),
	SyncState.SYNCING: _("syncing"),
	SyncState.ERROR: _("error"),
}

class NBIndicator:
	# Status checks scheduler
	__controller:PollController = None

	# AppIndicator instance
	__indicator = None

	# Gtk AppIndicator menu
	__menu:NBMenu = None

	# Settings
	__settings:NBSettings = None

	def __init__(self, source:CloudStatus, settings:NBSettings):
		self.__settings = settings

		self.__indicator = AppIndicator.Indicator.new(
			APPINDICATOR_ID, STATE_ICONS[SyncState.IDLE],
			AppIndicator.IndicatorCategory.SYSTEM_SERVICES
			)
		self.__indicator.set_status(AppIndicator.IndicatorStatus.ACTIVE)

		menu_actions = {
			"on_check": self.on_check,
			"on_cloud_root": self.on_cloud_root,
			"on_choose_cloud_root": self.on_choose_cloud_root,
			"on_frequency": self.on_frequency,
			"on_about": self.on_about,
			"on_quit": self.on_quit
		}

		self.__menu = NBMenu(
			frequency=self.__settings.get_frequency(),
			menu_actions=menu_actions
			)
		self.__indicator.set_menu(self.__menu)
		self.__menu.show_all()

		self.__controller = PollController(
			source=source,
			loop=GLibLoop(),
			sink=self,
			interval=self.__settings.get_interval()
			)
		self.update(SyncState.IDLE, self.__controller.snapshot, None)

		# Looking at the menu is a good reason to check the status
		self.__menu.connect("show", self.on_check)

		# First look at the status right away
		self.__controller.poll()

	def update(self, state:SyncState, snapshot, last_checked):
		self.__indicator.set_icon_full(STATE_ICONS[state], STATE_LABELS[state])
		self.__menu.set_label("sync_status", _("Status: ") + STATE_LABELS[state])

		if last_checked is None:
			checked = _("never")
		else:
			checked = datetime.fromtimestamp(last_checked).strftime("%H:%M:%S")
		self.__menu.set_label("last_checked", _("Last checked: ") + checked)

		self.__menu.set_label("upload", _("  ↑ %d files • %.1f GB pending") % (
			snapshot.uploading_files, snapshot.upload_pending_gb))
		self.__menu.set_label("download", _("  ↓ %d files • %.1f GB pending") % (
			snapshot.downloading_files, snapshot.download_pending_gb))

		self.__menu.set_recent(snapshot.active_folders, self.on_recent_folder)

	def on_check(self, source):
		self.__controller.poll()

	def on_frequency(self, source, frequency:str):
		if not source.get_active():
			return
		self.__settings.set_frequency(frequency)
		self.__controller.set_interval(self.__settings.get_interval())

	def on_cloud_root(self, source):
		cloud_root = self.__settings.get_cloud_root()
		if not self.__settings.has_cloud_root():
			self.__warn(
				_("Cloud folder not found"),
				_("Could not locate the cloud folder:\n") + cloud_root
				)
			return
		self.__open_fm(cloud_root)

	def on_choose_cloud_root(self, source):
		dialog = Gtk.FileChooserDialog(
			title=_("Choose cloud folder"),
			action=Gtk.FileChooserAction.SELECT_FOLDER,
			)
		dialog.add_buttons(
			Gtk.STOCK_CANCEL, Gtk.ResponseType.CANCEL,
			Gtk.STOCK_OPEN, Gtk.ResponseType.OK
			)
		if self.__settings.has_cloud_root():
			dialog.set_current_folder(self.__settings.get_cloud_root())
		if dialog.run() == Gtk.ResponseType.OK and dialog.get_filename() is not None:
			self.__settings.set_cloud_root(dialog.get_filename())
		dialog.destroy()

	def on_recent_folder(self, source):
		self.__open_fm(
			resolve_location(self.__settings.get_cloud_root(), source.tag)
		)

	def on_about(self, source):
		dialog = Gtk.MessageDialog(
			flags=0,
			message_type=Gtk.MessageType.INFO,
			buttons=Gtk.ButtonsType.OK,
			text=_("Nube"),
			)
		dialog.format_secondary_text(
			_("Cloud sync status indicator\nversion 1.0\n© 2025 Dandelion {Systems}")
			)
		dialog.run()
		dialog.destroy()

	def on_quit(self, source):
		self.__controller.stop()
		remove_pid_file()
		Gtk.main_quit()

	def __open_fm(self, dir_path:str):
		fm = which("nautilus")
		if fm is None:
			fm = which("thunar")
		if fm is None:
			fm = which("pcmanfm")
		if fm is not None:
			Popen([fm, dir_path])
		else:
			self.__warn(
				_("File Manager not found"),
				_("Nautilus, Thunar and PCManFM file managers are suported, none found")
				)

	def __warn(self, text:str, details:str):
		dialog = Gtk.MessageDialog(
			flags=0,
			message_type=Gtk.MessageType.WARNING,
			buttons=Gtk.ButtonsType.OK,
			text=text,
			)
		dialog.format_secondary_text(details)
		dialog.run()
		dialog.destroy()


def main():
	if not is_unique():
		raise NBNotUnique

	# In case the settings are corrupt, we silently revert to defaults
	try:
		settings = NBSettings()
	except NBInvalidSettings:
		log("invalid settings file, using defaults", True)
		settings = NBSettings(load=False)

	try:
		source = CloudStatus()
	except NoStatusCLI as e:
		remove_pid_file()
		print(_("Status command not found: ") + str(e), file=sys.stderr)
		return 1

	NBIndicator(source, settings)
	Gtk.main()
	return 0


if __name__ == "__main__":
	sys.exit(main())
