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

from datetime import datetime
from os import environ

# Set NUBE_DEBUG in the environment to see the debug trace
DEBUG = "NUBE_DEBUG" in environ


# Debug helper logger ---------------------------------------
#
def log(msg:str, do:bool=DEBUG):
	if do:
		now = datetime.now()
		print(now.strftime("%H:%M:%S"), ": ", msg)
