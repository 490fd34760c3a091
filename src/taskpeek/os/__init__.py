# -*- coding: utf-8 -*-
"""Operating system helpers (process table access)."""
