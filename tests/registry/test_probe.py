"""Tests for RegistryProbe across several fake registries."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client.registry import CollectorRegistry

from buildfeed.connectors.nuget import NuGetClient, NuGetConfig, RegistrySource, ServiceIndex
from buildfeed.contracts import PackageVersionInfo
from buildfeed.errors import RegistryError, UpstreamError
from buildfeed.metrics import ServiceMetrics
from buildfeed.registry import RegistryProbe
from tests.fakes import FakeRegistry, FakeUpstream, registry_sources, serve

PACKAGES = ("Pkg.A", "Foo", "Pkg.B")


def make_upstream() -> FakeUpstream:
    return FakeUpstream(
        registries={
            "nightly": FakeRegistry(
                versions={"Pkg.A": ["1.0.0", "1.1.0-alpha"], "Pkg.B": ["3.0.0"]}
            ),
            "nuget": FakeRegistry(
                versions={"Pkg.A": ["0.9.0"], "Pkg.B": ["2.0.0", "2.5.0"]},
                advertise_details=True,
            ),
        }
    )


class TestProbe:
    """Report shape and ordering."""

    @pytest.mark.asyncio
    async def test_reports_in_configured_order(self) -> None:
        upstream = make_upstream()
        async with serve(upstream) as base:
            config = NuGetConfig(sources=registry_sources(base, ["nightly", "nuget"]), packages=PACKAGES)
            client = NuGetClient(config)
            try:
                reports = await RegistryProbe(client).probe()
            finally:
                await client.close()

        assert [r.source_name for r in reports] == ["nightly", "nuget"]
        for report in reports:
            assert [p.name for p in report.packages] == list(PACKAGES)

        nightly, nuget = reports
        assert nightly.search_url == f"{base}/nuget/nightly/search"
        assert nightly.package_details_url_template == (
            "https://feeds.example/nightly/package/{id}/{version}"
        )
        assert nuget.package_details_url_template == "https://www.nuget.org/packages/{id}/{version}"
        assert nuget.package("Pkg.B").newest_version == "2.5.0"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_absent_package_does_not_affect_others(self) -> None:
        upstream = make_upstream()
        async with serve(upstream) as base:
            config = NuGetConfig(sources=registry_sources(base, ["nightly"]), packages=PACKAGES)
            client = NuGetClient(config)
            try:
                (report,) = await RegistryProbe(client).probe()
            finally:
                await client.close()

        foo = report.package("Foo")
        assert foo is not None
        assert foo.newest_version is None
        assert foo.newest_prerelease_version is None
        assert foo.package_uri == "https://feeds.example/nightly/package/Foo"

        pkg_a = report.package("Pkg.A")
        assert pkg_a is not None
        assert pkg_a.newest_version == "1.0.0"
        assert pkg_a.newest_prerelease_version == "1.1.0-alpha"

    @pytest.mark.asyncio
    async def test_prerelease_flag_applies_to_newest_version(self) -> None:
        upstream = make_upstream()
        async with serve(upstream) as base:
            config = NuGetConfig(sources=registry_sources(base, ["nightly"]), packages=("Pkg.A",))
            client = NuGetClient(config)
            try:
                (report,) = await RegistryProbe(client).probe(include_prerelease=True)
            finally:
                await client.close()

        assert report.packages[0].newest_version == "1.1.0-alpha"

    @pytest.mark.asyncio
    async def test_registry_without_search_fails_probe(self) -> None:
        upstream = make_upstream()
        upstream.registries["nuget"].advertise_search = False
        registry = CollectorRegistry()
        async with serve(upstream) as base:
            config = NuGetConfig(sources=registry_sources(base, ["nightly", "nuget"]), packages=PACKAGES)
            client = NuGetClient(config)
            try:
                with pytest.raises(RegistryError):
                    await RegistryProbe(client, metrics=ServiceMetrics(registry=registry)).probe()
            finally:
                await client.close()

        value = registry.get_sample_value(
            "buildfeed_runs_total", {"kind": "registry_probe", "outcome": "failure"}
        )
        assert value == 1.0

    @pytest.mark.asyncio
    async def test_search_failure_fails_probe(self) -> None:
        upstream = make_upstream()
        upstream.fail_paths.add("/nuget/nightly/search")
        async with serve(upstream) as base:
            config = NuGetConfig(sources=registry_sources(base, ["nightly"]), packages=PACKAGES)
            client = NuGetClient(config)
            try:
                with pytest.raises(UpstreamError):
                    await RegistryProbe(client).probe()
            finally:
                await client.close()


class TestProbeCancellation:
    """A failing lookup stops the rest of the probe."""

    @pytest.mark.asyncio
    async def test_failing_package_cancels_siblings(self) -> None:
        finished: list[str] = []

        async def get_package_info(
            search_url: str, name: str, template: str | None, *, include_prerelease: bool
        ) -> PackageVersionInfo:
            if name == "Bad":
                raise RuntimeError("lookup failed")
            await asyncio.sleep(0.05)
            finished.append(name)
            return PackageVersionInfo(name=name)

        source = RegistrySource("main", "https://registry.example/index.json")
        client = MagicMock()
        client.config = NuGetConfig(sources=(source,), packages=("Bad", "Slow"))
        client.get_service_index = AsyncMock(
            return_value=ServiceIndex(search_url="https://registry.example/search")
        )
        client.get_package_info = get_package_info

        with pytest.raises(RuntimeError, match="lookup failed"):
            await RegistryProbe(client).probe()

        await asyncio.sleep(0.1)
        assert finished == []

    @pytest.mark.asyncio
    async def test_failing_source_cancels_other_sources(self) -> None:
        finished: list[str] = []
        sources = (
            RegistrySource("broken", "https://broken.example/index.json"),
            RegistrySource("slow", "https://slow.example/index.json"),
        )

        async def get_service_index(source: RegistrySource) -> ServiceIndex:
            if source.name == "broken":
                raise RegistryError("no search service")
            await asyncio.sleep(0.05)
            finished.append(source.name)
            return ServiceIndex(search_url="https://slow.example/search")

        client = MagicMock()
        client.config = NuGetConfig(sources=sources, packages=("Pkg.A",))
        client.get_service_index = get_service_index

        with pytest.raises(RegistryError):
            await RegistryProbe(client).probe()

        await asyncio.sleep(0.1)
        assert finished == []
