"""
Unit tests for circular models and configuration.
"""

import pytest
from pydantic import ValidationError

from circulars.models import Circular, circulars_from_documents, circulars_to_documents
from scheduler.models import DiffMode, SyncOutcome
from utilities.config import PollerConfig


class TestCircular:

    def test_valid_circular(self):
        circular = Circular(id=12, name="Circolare 12", url="https://www.example.edu/12.pdf")

        assert circular.id == 12
        assert circular.name == "Circolare 12"

    def test_circular_is_immutable(self):
        circular = Circular(id=12, name="Circolare 12", url="https://www.example.edu/12.pdf")

        with pytest.raises(ValidationError):
            circular.name = "Changed"

    def test_equality_and_hashing(self):
        a = Circular(id=1, name="A", url="u")
        b = Circular(id=1, name="A", url="u")

        assert a == b
        assert len({a, b}) == 1

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            Circular(name="No id", url="u")

    def test_document_conversion_preserves_order(self, circulars):
        items = circulars((3, "C"), (1, "A"), (2, "B"))

        documents = circulars_to_documents(items)

        assert [d["id"] for d in documents] == [3, 1, 2]
        assert circulars_from_documents(documents) == items


class TestEnums:

    def test_outcome_values(self):
        assert SyncOutcome.SUCCESS == "success"
        assert SyncOutcome.RETRY == "retry"

    def test_diff_mode_from_config_value(self):
        assert DiffMode("length") == DiffMode.LENGTH
        assert DiffMode("by_id") == DiffMode.BY_ID

        with pytest.raises(ValueError):
            DiffMode("by_content")


class TestPollerConfig:

    def test_defaults(self):
        config = PollerConfig(_env_file=None)

        assert config.poll_interval_minutes == 15
        assert config.notifications_enabled is True
        assert config.diff_mode is DiffMode.LENGTH
        assert config.max_pages > 1

    def test_page_urls(self):
        config = PollerConfig(_env_file=None, source_url="https://www.example.edu/circolari/")

        assert config.get_page_url(1) == "https://www.example.edu/circolari/"
        assert config.get_page_url(3) == "https://www.example.edu/circolari/page/3/"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            PollerConfig(_env_file=None, poll_interval_minutes=5)

        with pytest.raises(ValidationError):
            PollerConfig(_env_file=None, diff_mode="fuzzy")

        with pytest.raises(ValidationError):
            PollerConfig(_env_file=None, log_level="verbose")

    def test_values_are_normalized(self):
        config = PollerConfig(_env_file=None, log_level="debug", log_format="CONSOLE", store_backend="Memory")

        assert config.log_level == "DEBUG"
        assert config.log_format == "console"
        assert config.store_backend == "memory"

    def test_diff_mode_coerced_from_environment(self, monkeypatch):
        monkeypatch.setenv("DIFF_MODE", "by_id")

        config = PollerConfig(_env_file=None)

        assert config.diff_mode is DiffMode.BY_ID
