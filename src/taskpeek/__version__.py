# -*- coding: utf-8 -*-

__title__ = "taskpeek"
__description__ = "Prometheus exporter for workflow scheduler task processes."
__url__ = "https://github.com/kaydxh/taskpeek"
__version__ = "0.1.0"
__author__ = "kaydxh"
__author_email__ = "kaydxh@example.com"
__license__ = "MIT"
