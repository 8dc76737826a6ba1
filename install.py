#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the static site provisioner.

Usage: sudo python3 install.py [-v] [--config config.yaml]
"""

import sys

from provisioner.cli import main

if __name__ == "__main__":
    sys.exit(main())
