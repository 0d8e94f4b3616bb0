"""
Tests for the chunked import: request parameters, row upserts, summaries,
idempotence and failure behaviour.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from gacounter.exceptions import ConfigurationError, UpstreamRequestError
from gacounter.models.pageview import PageviewByPath
from gacounter.services.chunk_cache import ChunkCache
from gacounter.services.importer import (
    ImportOrchestrator,
    chunk_parameters,
    sanitize_path,
)
from gacounter.services.paths import path_key
from gacounter.services.report_fetcher import ReportFetcher
from tests.conftest import FakeProvider


def _orchestrator(session, provider, settings, clock):
    fetcher = ReportFetcher(provider, ChunkCache(session, clock=clock), default_ttl=settings.cache_length)
    return ImportOrchestrator(session, fetcher, settings)


async def _stored(session) -> dict[str, tuple[str, int]]:
    rows = (await session.execute(select(PageviewByPath))).scalars().all()
    return {r.path_hash: (r.path, r.pageviews) for r in rows}


class TestChunkParameters:
    def test_first_chunk(self, test_settings):
        params = chunk_parameters(0, test_settings, today=date(2024, 3, 10))
        assert params.start_index == 1
        assert params.max_results == 2
        assert params.profile_id == "ga:12345"
        assert params.dimensions == ("ga:pagePath",)
        assert params.metrics == ("ga:pageviews",)
        assert params.start_date == date(2020, 1, 1)
        assert params.end_date == date(2024, 3, 11)

    def test_later_chunk_offsets(self, test_settings):
        assert chunk_parameters(1, test_settings).start_index == 3
        assert chunk_parameters(4, test_settings).start_index == 9

    def test_end_date_is_tomorrow_by_default(self, test_settings):
        params = chunk_parameters(0, test_settings)
        assert params.end_date == date.today() + timedelta(days=1)

    def test_missing_profile_fails_fast(self, test_settings):
        cfg = test_settings.model_copy(update={"ga_profile_id": ""})
        with pytest.raises(ConfigurationError):
            chunk_parameters(0, cfg)

    def test_non_positive_chunk_size(self, test_settings):
        cfg = test_settings.model_copy(update={"chunk_to_fetch": 0})
        with pytest.raises(ConfigurationError):
            chunk_parameters(0, cfg)

    def test_negative_index(self, test_settings):
        with pytest.raises(ValueError):
            chunk_parameters(-1, test_settings)

    def test_negative_cache_length(self, test_settings):
        cfg = test_settings.model_copy(update={"cache_length": -1})
        with pytest.raises(ConfigurationError, match="cache_length"):
            chunk_parameters(0, cfg)

    def test_start_date_after_range_end(self, test_settings):
        cfg = test_settings.model_copy(update={"start_date": date(2024, 3, 12)})
        with pytest.raises(ConfigurationError, match="start_date"):
            chunk_parameters(0, cfg, today=date(2024, 3, 10))

    def test_start_date_tomorrow_is_allowed(self, test_settings):
        cfg = test_settings.model_copy(update={"start_date": date(2024, 3, 11)})
        assert chunk_parameters(0, cfg, today=date(2024, 3, 10)).start_date == date(2024, 3, 11)


class TestSanitizePath:
    def test_escapes_markup_and_quotes(self):
        assert sanitize_path("/a?q=<b>\"x\"&'y'") == "/a?q=&lt;b&gt;&quot;x&quot;&amp;&#039;y&#039;"

    def test_plain_path_untouched(self):
        assert sanitize_path("/node/5/") == "/node/5/"


class TestUpdatePathCounts:
    async def test_two_row_chunk(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 5), ("/b", 7)])
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        summary = await orchestrator.update_path_counts(0)

        assert summary.saved == 2
        assert summary.start_index == 1
        assert summary.max_results == 2
        assert await _stored(db_session) == {
            path_key("/a"): ("/a", 5),
            path_key("/b"): ("/b", 7),
        }
        assert provider.calls[0].start_index == 1
        assert provider.calls[0].max_results == 2

    async def test_empty_chunk(self, db_session, test_settings, clock):
        orchestrator = _orchestrator(db_session, FakeProvider(rows=[]), test_settings, clock)

        summary = await orchestrator.update_path_counts(3)

        assert summary.saved == 0
        assert summary.exhausted is True
        assert await _stored(db_session) == {}

    async def test_full_chunk_is_not_exhausted(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 1), ("/b", 2)], total_results=10)
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)
        summary = await orchestrator.update_path_counts(0)
        assert summary.exhausted is False

    async def test_short_page_with_rows_remaining_is_not_exhausted(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 1)], total_results=500)
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        summary = await orchestrator.update_path_counts(0)

        assert summary.saved == 1
        assert summary.total_results == 500
        assert summary.exhausted is False

    async def test_last_page_is_exhausted(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/y", 1), ("/z", 2)], total_results=8)
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        summary = await orchestrator.update_path_counts(3)

        assert summary.start_index == 7
        assert summary.exhausted is True

    async def test_rerun_same_index_is_idempotent(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 5), ("/b", 7)])
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        await orchestrator.update_path_counts(0)
        first = await _stored(db_session)
        await orchestrator.update_path_counts(0, refresh=True)

        assert await _stored(db_session) == first
        assert len(provider.calls) == 2

    async def test_later_import_replaces_count(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 5)])
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        await orchestrator.update_path_counts(0)
        provider.rows = [("/a", 9)]
        await orchestrator.update_path_counts(0, refresh=True)

        assert await _stored(db_session) == {path_key("/a"): ("/a", 9)}

    async def test_cached_chunk_is_reused(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 5)])
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        await orchestrator.update_path_counts(0)
        await orchestrator.update_path_counts(0)

        assert len(provider.calls) == 1

    async def test_key_uses_raw_path_storage_uses_escaped(self, db_session, test_settings, clock):
        raw = "/search?q=<x>"
        orchestrator = _orchestrator(db_session, FakeProvider(rows=[(raw, 3)]), test_settings, clock)

        await orchestrator.update_path_counts(0)

        assert await _stored(db_session) == {path_key(raw): ("/search?q=&lt;x&gt;", 3)}

    async def test_duplicate_path_in_chunk_last_wins(self, db_session, test_settings, clock):
        provider = FakeProvider(rows=[("/a", 5), ("/a", 6)])
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        summary = await orchestrator.update_path_counts(0)

        assert summary.saved == 2
        assert await _stored(db_session) == {path_key("/a"): ("/a", 6)}

    async def test_upstream_error_aborts(self, db_session, test_settings, clock):
        provider = FakeProvider(error=UpstreamRequestError("Backend error", status=503))
        orchestrator = _orchestrator(db_session, provider, test_settings, clock)

        with pytest.raises(UpstreamRequestError, match="Backend error"):
            await orchestrator.update_path_counts(0)
        assert await _stored(db_session) == {}

    async def test_configuration_error_before_network(self, db_session, test_settings, clock):
        cfg = test_settings.model_copy(update={"ga_profile_id": ""})
        provider = FakeProvider(rows=[("/a", 5)])
        orchestrator = _orchestrator(db_session, provider, cfg, clock)

        with pytest.raises(ConfigurationError):
            await orchestrator.update_path_counts(0)
        assert provider.calls == []

    async def test_negative_cache_length_before_network(self, db_session, test_settings, clock):
        cfg = test_settings.model_copy(update={"cache_length": -1})
        provider = FakeProvider(rows=[("/a", 5)])
        orchestrator = _orchestrator(db_session, provider, cfg, clock)

        with pytest.raises(ConfigurationError):
            await orchestrator.update_path_counts(0)
        assert provider.calls == []
