"""Proportional allocation of an exam's seats across difficulty buckets."""


def compute_bucket_sizes(buckets, target_total):
    """
    Split ``target_total`` seats across ``buckets`` (bucket key -> available
    question count) in proportion to each bucket's share of the pool.

    Each bucket first gets ``floor(target_total * count / pool)``. Seats lost to
    flooring go one at a time to the buckets with the largest fractional
    remainder; equal remainders favour the bucket that comes later in the
    mapping's order. No bucket is ever given more than it holds, and when the
    pool is smaller than the target every bucket is taken whole.

    The result is deterministic and keeps the input key order.
    """
    counts = {key: max(0, int(count)) for key, count in buckets.items()}
    pool_size = sum(counts.values())
    target_total = max(0, int(target_total))

    if pool_size == 0:
        return {key: 0 for key in counts}
    if target_total >= pool_size:
        return dict(counts)

    # Integer arithmetic keeps remainders exact, so tie-breaking is stable
    sizes = {}
    remainders = []
    for index, (key, count) in enumerate(counts.items()):
        share, remainder = divmod(target_total * count, pool_size)
        sizes[key] = share
        remainders.append((remainder, index, key))

    leftover = target_total - sum(sizes.values())
    for remainder, index, key in sorted(remainders, key=lambda r: (-r[0], -r[1])):
        if leftover <= 0:
            break
        if sizes[key] < counts[key]:
            sizes[key] += 1
            leftover -= 1

    return sizes
