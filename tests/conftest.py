from __future__ import annotations

import logging

import pytest

from pkiplot.logging import reset_logging


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for name in (
        "PKIPLOT_FORMAT",
        "PKIPLOT_NAMESPACE",
        "PKIPLOT_CLUSTER_RESOURCE_NAMESPACE",
        "PKIPLOT_SHOW_SECRETS",
        "PKIPLOT_SHOW_SYNTHETICS",
        "PKIPLOT_STYLES",
        "PKIPLOT_LOG_LEVEL",
        "PKIPLOT_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_logging()
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    reset_logging()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
