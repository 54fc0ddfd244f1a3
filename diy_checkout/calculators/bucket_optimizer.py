"""
Bucket Optimizer — cheapest combination of pack sizes covering a volume.

Bounded dynamic program over volume discretised ×100 (centiliters /
centimetres) so float drift never decides feasibility. The table runs one
largest pack past the target, which guarantees at least one covering state.

Density rule: the largest pack size is unconstrained, every other size may
appear at most MAX_SMALL_PACKS times in one combination. Without it the DP
happily returns "7 × 5L" when "3 × 15L" costs a few cents more.

Each state keeps only its cost, the state it came from, the pack that got it
there, and a packed integer of small-pack usage (a few bits per size).
Per-size quantities are rebuilt by walking parents back to zero.
"""

import math

SCALE = 100

# Max units of any non-largest pack size in one combination
MAX_SMALL_PACKS = 3

# Largest volume or pack size the table is built for (L or m); caps memory per call
MAX_VOLUME = 10_000


class VolumeTooLargeError(ValueError):
    """Requested volume or a pack size is beyond MAX_VOLUME."""


def optimize_buckets(volume_needed: float, variants: list,
                     max_small_packs: int = MAX_SMALL_PACKS) -> list:
    """
    Minimum-cost multiset of packs whose total size >= volume_needed.

    Args:
        volume_needed: required volume in the role's unit (L or m)
        variants: [{"size": float, "price": float}, ...]
        max_small_packs: cap on every pack size except the largest

    Returns:
        [{"size": float, "quantity": int}, ...] largest size first,
        zero quantities omitted. Empty when there is nothing to buy.

    Raises:
        VolumeTooLargeError: volume_needed or a pack size exceeds MAX_VOLUME
    """
    if not variants or volume_needed is None or not math.isfinite(volume_needed):
        return []
    if volume_needed <= 0:
        return []
    if volume_needed > MAX_VOLUME:
        raise VolumeTooLargeError(f"Volume {volume_needed:g} exceeds the {MAX_VOLUME:,} limit")

    ordered = sorted(
        (v for v in variants if v.get("size", 0) > 0 and math.isfinite(v.get("price", 0))),
        key=lambda v: v["size"],
        reverse=True,
    )
    if not ordered:
        return []
    if ordered[0]["size"] > MAX_VOLUME:
        raise VolumeTooLargeError(f"Pack size {ordered[0]['size']:g} exceeds the {MAX_VOLUME:,} limit")

    steps = [int(round(v["size"] * SCALE)) for v in ordered]
    prices = [int(round(v.get("price", 0) * 100)) for v in ordered]  # cents

    need = math.ceil(round(volume_needed * SCALE, 6))
    cap = need + steps[0]

    bits = max(max_small_packs, 0).bit_length()
    mask = (1 << bits) - 1

    cost = [None] * (cap + 1)
    parent = [-1] * (cap + 1)
    via = [-1] * (cap + 1)
    usage = [0] * (cap + 1)
    cost[0] = 0

    for vol in range(cap + 1):
        current = cost[vol]
        if current is None:
            continue
        for i, step in enumerate(steps):
            nxt = vol + step
            if nxt > cap:
                continue
            next_usage = usage[vol]
            if i > 0:
                shift = (i - 1) * bits
                if ((usage[vol] >> shift) & mask) >= max_small_packs:
                    continue
                next_usage += 1 << shift
            next_cost = current + prices[i]
            if cost[nxt] is None or next_cost < cost[nxt]:
                cost[nxt] = next_cost
                parent[nxt] = vol
                via[nxt] = i
                usage[nxt] = next_usage

    # Smallest sufficient volume wins ties
    best = None
    for vol in range(need, cap + 1):
        if cost[vol] is not None and (best is None or cost[vol] < cost[best]):
            best = vol
    if best is None:
        return []

    counts = [0] * len(ordered)
    vol = best
    while vol > 0:
        counts[via[vol]] += 1
        vol = parent[vol]

    return [
        {"size": v["size"], "quantity": counts[i]}
        for i, v in enumerate(ordered)
        if counts[i] > 0
    ]


def combination_volume(combination: list) -> float:
    """Total size covered by an optimizer result."""
    return round(sum(c["size"] * c["quantity"] for c in combination), 2)


def combination_cost(combination: list, variants: list) -> float:
    """Total price of an optimizer result, using the cheapest variant per size."""
    price_by_size = {}
    for v in variants:
        size = v["size"]
        if size not in price_by_size or v["price"] < price_by_size[size]:
            price_by_size[size] = v["price"]
    return round(sum(price_by_size[c["size"]] * c["quantity"] for c in combination), 2)
