# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
import sys

from edhex.cli import main

sys.exit(main())
