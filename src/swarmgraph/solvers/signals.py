"""
Momentum/volatility signal heuristic.

A simple rule over recent returns, useful as a deterministic demo payload
for swarms. It is a heuristic, not a trading model.
"""

import math
from typing import Any, Dict, Sequence

from ..exceptions import ValidationError

MOMENTUM_WINDOW = 5
MOMENTUM_THRESHOLD = 0.02
SHARPE_THRESHOLD = 0.5


def momentum_signal(prices: Sequence[float], lookback: int = 20) -> Dict[str, Any]:
    """
    Emit ``buy``, ``sell`` or ``hold`` from recent price action.

    Over the last ``lookback`` prices: mean return, population standard
    deviation of returns, momentum as the sum of the last five returns and
    a Sharpe-like ratio ``mean / (std + 1e-8)``.

    Returns:
        ``{signal, confidence, momentum, volatility, sharpe, avg_return}``;
        only ``{signal: "hold", confidence: 0}`` when there are fewer prices
        than ``lookback``
    """
    if lookback < 2:
        raise ValidationError(f"lookback must be at least 2, got {lookback}")
    if not prices or len(prices) < lookback:
        return {"signal": "hold", "confidence": 0.0}

    recent = list(prices)[-lookback:]
    returns = []
    for previous, current in zip(recent, recent[1:]):
        if previous == 0:
            raise ValidationError("Prices must be non-zero to compute returns")
        returns.append((current - previous) / previous)

    avg_return = sum(returns) / len(returns)
    volatility = math.sqrt(sum((r - avg_return) ** 2 for r in returns) / len(returns))
    momentum = sum(returns[-MOMENTUM_WINDOW:])
    sharpe = avg_return / (volatility + 1e-8)

    signal = "hold"
    confidence = 0.5

    if momentum > MOMENTUM_THRESHOLD and sharpe > SHARPE_THRESHOLD:
        signal = "buy"
        confidence = min(0.9, 0.5 + sharpe * 0.2)
    elif momentum < -MOMENTUM_THRESHOLD and sharpe < -SHARPE_THRESHOLD:
        signal = "sell"
        confidence = min(0.9, 0.5 + abs(sharpe) * 0.2)

    return {
        "signal": signal,
        "confidence": confidence,
        "momentum": momentum,
        "volatility": volatility,
        "sharpe": sharpe,
        "avg_return": avg_return,
    }
