"""Tests for issuer identity resolution."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.opencerts.api_models import ErrorCode
from app.opencerts.certificate import EnsName, EthereumAddress
from app.opencerts.exceptions import IdentityResolutionError, ResolutionFault
from app.opencerts.identity import IssuerIdentityResolver, partition_issuers

from conftest import ENS_NAME, ENS_NAME_2, ISSUER_ADDRESS, ISSUER_ADDRESS_2


def make_resolver(ens=None, addresses=None):
    names = MagicMock()
    names.resolve_ens_batch = AsyncMock(return_value=ens if ens is not None else [])
    names.resolve_address_batch = AsyncMock(return_value=addresses if addresses is not None else [])
    return names


class TestPartitionIssuers:
    def test_keeps_relative_order(self):
        refs = [
            EthereumAddress(ISSUER_ADDRESS),
            EnsName(ENS_NAME),
            EthereumAddress(ISSUER_ADDRESS_2),
            EnsName(ENS_NAME_2),
        ]
        assert partition_issuers(refs) == (
            [ENS_NAME, ENS_NAME_2],
            [ISSUER_ADDRESS, ISSUER_ADDRESS_2],
        )


class TestIssuerIdentityResolver:
    @pytest.mark.asyncio
    async def test_single_ens_name(self):
        names = make_resolver(ens=["test store"])
        result = await IssuerIdentityResolver(names).resolve([EnsName(ENS_NAME)])

        assert result == ["test store"]
        names.resolve_ens_batch.assert_awaited_once_with([ENS_NAME])
        names.resolve_address_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_multiple_ens_names_in_order(self):
        names = make_resolver(ens=["test store", "test store 2"])
        result = await IssuerIdentityResolver(names).resolve(
            [EnsName(ENS_NAME), EnsName(ENS_NAME_2)]
        )

        assert result == ["test store", "test store 2"]
        names.resolve_ens_batch.assert_awaited_once_with([ENS_NAME, ENS_NAME_2])

    @pytest.mark.asyncio
    async def test_addresses_only(self):
        names = make_resolver(addresses=["registry 1", "registry 2"])
        result = await IssuerIdentityResolver(names).resolve(
            [EthereumAddress(ISSUER_ADDRESS), EthereumAddress(ISSUER_ADDRESS_2)]
        )

        assert result == ["registry 1", "registry 2"]
        names.resolve_address_batch.assert_awaited_once_with([ISSUER_ADDRESS, ISSUER_ADDRESS_2])
        names.resolve_ens_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mixed_returns_addresses_first(self):
        """Address names come first whatever the input interleaving."""
        names = make_resolver(
            ens=["resolved ens 1", "resolved ens 2"],
            addresses=["registry 1", "registry 2"],
        )
        refs = [
            EnsName(ENS_NAME),
            EthereumAddress(ISSUER_ADDRESS),
            EnsName(ENS_NAME_2),
            EthereumAddress(ISSUER_ADDRESS_2),
        ]
        result = await IssuerIdentityResolver(names).resolve(refs)

        assert result == ["registry 1", "registry 2", "resolved ens 1", "resolved ens 2"]

    @pytest.mark.asyncio
    async def test_ens_lookup_runs_before_address_lookup(self):
        order = []
        names = MagicMock()

        async def ens(batch):
            order.append("ens")
            return ["ens"]

        async def addresses(batch):
            order.append("addresses")
            return ["address"]

        names.resolve_ens_batch = ens
        names.resolve_address_batch = addresses
        await IssuerIdentityResolver(names).resolve(
            [EthereumAddress(ISSUER_ADDRESS), EnsName(ENS_NAME)]
        )

        assert order == ["ens", "addresses"]

    @pytest.mark.asyncio
    async def test_no_issuers(self):
        names = make_resolver()
        with pytest.raises(IdentityResolutionError) as exc:
            await IssuerIdentityResolver(names).resolve([])

        assert exc.value.message == "Issuer identity missing in certificate"
        assert exc.value.code == ErrorCode.ISSUER_IDENTITY_MISSING
        names.resolve_ens_batch.assert_not_awaited()
        names.resolve_address_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_resolves(self):
        names = make_resolver(ens=[], addresses=[])
        with pytest.raises(IdentityResolutionError, match="Issuer identity missing in certificate"):
            await IssuerIdentityResolver(names).resolve(
                [EnsName(ENS_NAME), EthereumAddress(ISSUER_ADDRESS)]
            )
        names.resolve_ens_batch.assert_awaited_once()
        names.resolve_address_batch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_resolution_is_success(self):
        names = make_resolver(ens=[], addresses=["registry 1"])
        result = await IssuerIdentityResolver(names).resolve(
            [EnsName(ENS_NAME), EthereumAddress(ISSUER_ADDRESS)]
        )
        assert result == ["registry 1"]

    @pytest.mark.asyncio
    async def test_lookup_fault_keeps_message(self):
        names = make_resolver()
        names.resolve_address_batch.side_effect = ResolutionFault("bam!")

        with pytest.raises(IdentityResolutionError) as exc:
            await IssuerIdentityResolver(names).resolve([EthereumAddress(ISSUER_ADDRESS)])

        assert exc.value.message == "bam!"
        assert exc.value.code == ErrorCode.ISSUER_RESOLUTION_FAILED

    @pytest.mark.asyncio
    async def test_transport_error_is_lookup_fault(self):
        names = make_resolver()
        names.resolve_ens_batch.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(IdentityResolutionError) as exc:
            await IssuerIdentityResolver(names).resolve([EnsName(ENS_NAME)])

        assert "connection refused" in exc.value.message
        assert exc.value.code == ErrorCode.ISSUER_RESOLUTION_FAILED
