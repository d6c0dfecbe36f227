"""Tests for the single-item detail expansion state."""

import asyncio

import pytest

from expansion import DetailExpansion

DELAY = 0.02


@pytest.mark.asyncio
async def test_expand_shows_fetching_then_loaded():
    view = DetailExpansion(delay=DELAY)
    view.toggle(1)
    assert view.expanded_id == 1
    assert view.fetching
    assert not view.is_loaded(1)
    await view.wait()
    assert view.is_loaded(1)


@pytest.mark.asyncio
async def test_toggle_twice_collapses():
    view = DetailExpansion(delay=DELAY)
    view.toggle(1)
    await view.wait()
    view.toggle(1)
    assert view.expanded_id is None
    assert not view.fetching


@pytest.mark.asyncio
async def test_collapse_while_fetching_needs_no_delay():
    view = DetailExpansion(delay=DELAY)
    view.toggle(1)
    view.toggle(1)
    assert view.expanded_id is None
    assert not view.fetching
    await asyncio.sleep(DELAY * 2)
    assert view.expanded_id is None
    assert not view.fetching


@pytest.mark.asyncio
async def test_switching_target_supersedes_pending_fetch():
    view = DetailExpansion(delay=DELAY)
    view.toggle(1)
    first = view._pending
    view.toggle(2)
    assert view.expanded_id == 2
    assert view.fetching
    await asyncio.sleep(DELAY / 2)
    assert first.cancelled() or first.done()
    assert view.fetching
    await view.wait()
    assert view.is_loaded(2)
    assert not view.is_loaded(1)


@pytest.mark.asyncio
async def test_stale_timer_does_not_clear_newer_fetch():
    delay = 0.2
    view = DetailExpansion(delay=delay)
    view.toggle(1)
    await asyncio.sleep(delay / 2)
    view.toggle(2)
    # the first timer would have fired by now
    await asyncio.sleep(delay * 0.75)
    assert view.expanded_id == 2
    assert view.fetching
    await view.wait()
    assert view.is_loaded(2)


@pytest.mark.asyncio
async def test_close_drops_pending_completion():
    view = DetailExpansion(delay=DELAY)
    view.toggle(3)
    view.close()
    await asyncio.sleep(DELAY * 2)
    assert view.expanded_id == 3
    assert view.fetching


@pytest.mark.asyncio
async def test_cancelled_waiter_leaves_fetch_running():
    view = DetailExpansion(delay=DELAY)
    view.toggle(1)
    waiter = asyncio.get_running_loop().create_task(view.wait())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert waiter.cancelled()
    await asyncio.sleep(DELAY * 2)
    assert view.is_loaded(1)


@pytest.mark.asyncio
async def test_wait_without_pending_returns():
    view = DetailExpansion(delay=DELAY)
    await view.wait()
    assert view.expanded_id is None
