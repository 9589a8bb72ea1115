"""Tests for the record store contract and its index helpers."""

import pytest

from store import WriteConflictError, escape_like, keys
from store.memory import MemoryRecordStore

@pytest.mark.asyncio
async def test_get_missing_returns_none():
    """Test that an absent key reads as None."""
    store = MemoryRecordStore()
    assert await store.get('users:nobody') is None

@pytest.mark.asyncio
async def test_set_get_delete():
    """Test basic writes, overwrites and idempotent deletes."""
    store = MemoryRecordStore()
    await store.set('k', {'v': 1})
    await store.set('k', {'v': 2})
    assert await store.get('k') == {'v': 2}

    await store.delete('k')
    await store.delete('k')
    assert await store.get('k') is None

@pytest.mark.asyncio
async def test_values_are_copied():
    """Test that mutating a read value does not change the stored one."""
    store = MemoryRecordStore()
    record = {'id': '1', 'tags': ['a']}
    await store.set('k', record)
    record['tags'].append('b')

    value = await store.get('k')
    value['tags'].append('c')
    assert await store.get('k') == {'id': '1', 'tags': ['a']}

@pytest.mark.asyncio
async def test_scan_by_prefix_is_literal():
    """Test prefix scans return only matching keys."""
    store = MemoryRecordStore({
        'listings:1': {'id': '1'},
        'listings:2': {'id': '2'},
        'listing-images:1:a': {'id': 'a'},
        'orders:1': {'id': 'o1'},
    })
    values = await store.scan_by_prefix('listings:')
    assert sorted(v['id'] for v in values) == ['1', '2']

@pytest.mark.asyncio
async def test_scan_records_skips_pointers():
    """Test pointer records sharing a prefix are not returned as records."""
    store = MemoryRecordStore()
    await store.put_indexed(keys.listing('l1'), {'id': 'l1'}, [keys.listing_by_seller('s1', 'l1')])

    assert len(await store.scan_by_prefix(keys.LISTINGS)) == 2
    assert await store.scan_records(keys.LISTINGS) == [{'id': 'l1'}]

@pytest.mark.asyncio
async def test_put_indexed_and_resolve_index():
    """Test a primary written with pointers resolves through its index."""
    store = MemoryRecordStore()
    for order_id in ('o1', 'o2'):
        await store.put_indexed(
            keys.order(order_id),
            {'id': order_id, 'buyer_id': 'b1'},
            [keys.order_by_buyer('b1', order_id)]
        )
    await store.put_indexed(keys.order('o3'), {'id': 'o3', 'buyer_id': 'b2'}, [keys.order_by_buyer('b2', 'o3')])

    assert await store.get(keys.order_by_buyer('b1', 'o1')) == 'o1'
    orders = await store.resolve_index(keys.orders_by_buyer('b1'), keys.ORDERS)
    assert sorted(o['id'] for o in orders) == ['o1', 'o2']

@pytest.mark.asyncio
async def test_resolve_index_skips_dangling_pointers():
    """Test pointers to deleted primaries are dropped."""
    store = MemoryRecordStore()
    await store.put_indexed(keys.review('r1'), {'id': 'r1'}, [keys.review_by_seller('s', 'r1')])
    await store.set(keys.review_by_seller('s', 'gone'), 'gone')

    reviews = await store.resolve_index(keys.reviews_by_seller('s'), keys.REVIEWS)
    assert reviews == [{'id': 'r1'}]

@pytest.mark.asyncio
async def test_get_many_aligned_with_keys():
    """Test batched reads keep input order and report misses as None."""
    store = MemoryRecordStore({'a': 1, 'c': 3})
    assert await store.get_many(['c', 'b', 'a']) == [3, None, 1]

@pytest.mark.asyncio
async def test_write_batch_applies_sets_and_deletes():
    """Test a batch writes and deletes together."""
    store = MemoryRecordStore({'old': 1})
    await store.write_batch(sets={'new': 2}, deletes=['old'])
    assert store.keys() == ['new']

@pytest.mark.asyncio
async def test_write_batch_expectation_mismatch_writes_nothing():
    """Test a failed compare-and-set aborts the whole batch."""
    store = MemoryRecordStore({'listings:1': {'quantity': 1}})

    with pytest.raises(WriteConflictError) as exc_info:
        await store.write_batch(
            sets={'orders:1': {'id': '1'}, 'listings:1': {'quantity': 0}},
            expected={'listings:1': {'quantity': 2}}
        )

    assert exc_info.value.key == 'listings:1'
    assert await store.get('orders:1') is None
    assert await store.get('listings:1') == {'quantity': 1}

@pytest.mark.asyncio
async def test_write_batch_expect_absent():
    """Test expecting None requires the key to be absent."""
    store = MemoryRecordStore()
    await store.write_batch(sets={'k': 1}, expected={'k': None})

    with pytest.raises(WriteConflictError):
        await store.write_batch(sets={'k': 2}, expected={'k': None})
    assert await store.get('k') == 1

def test_escape_like():
    """Test LIKE wildcards in prefixes are escaped."""
    assert escape_like('a_b%c') == 'a\\_b\\%c'
    assert escape_like('x\\y') == 'x\\\\y'
