"""
test_correlation.py - Registro de peticiones pendientes
=======================================================
"""

import asyncio

import pytest

from ast_bridge.domain.errors import CompilerExitedError
from ast_bridge.services.correlation import PendingResponses


def test_results_are_delivered_in_fifo_order():
    async def scenario():
        pending = PendingResponses()
        _, first = pending.register()
        _, second = pending.register()

        assert pending.resolve("uno")
        assert pending.resolve("dos")
        return await first, await second, len(pending)

    assert asyncio.run(scenario()) == ("uno", "dos", 0)


def test_matching_id_takes_precedence():
    async def scenario():
        pending = PendingResponses()
        _, first = pending.register()
        second_id, second = pending.register()

        pending.resolve("para el segundo", second_id)
        pending.resolve("para el primero")
        return await first, await second

    assert asyncio.run(scenario()) == ("para el primero", "para el segundo")


def test_unknown_id_falls_back_to_oldest():
    async def scenario():
        pending = PendingResponses()
        _, first = pending.register()
        pending.resolve("x", "no-such-id")
        return await first

    assert asyncio.run(scenario()) == "x"


def test_abandoned_request_still_consumes_its_result():
    async def scenario():
        pending = PendingResponses()
        _, first = pending.register()
        _, second = pending.register()
        first.cancel()

        pending.resolve("descartado")
        pending.resolve("entregado")
        return await second

    assert asyncio.run(scenario()) == "entregado"


def test_result_without_pending_request_is_dropped():
    async def scenario():
        return PendingResponses().resolve("nadie")

    assert asyncio.run(scenario()) is False


def test_fail_all_rejects_every_waiter():
    async def scenario():
        pending = PendingResponses()
        _, first = pending.register()
        pending.fail_all(CompilerExitedError(2))
        assert len(pending) == 0
        await first

    with pytest.raises(CompilerExitedError):
        asyncio.run(scenario())


def test_discard_removes_request():
    async def scenario():
        pending = PendingResponses()
        request_id, future = pending.register()
        pending.discard(request_id)
        return request_id in pending, future.cancelled()

    assert asyncio.run(scenario()) == (False, True)
