"""
Coin Graph Generator
====================

Default render subprocess. Reads one JSON object from stdin::

    {"coin": "BTC", "timeframe": "1m",
     "candlestickData": [{"time": 1, "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5}, ...],
     "volumeData": [{"time": 1, "volume": 100.0}, ...]}

draws a candlestick panel above a volume panel with Pillow and writes one JSON
object to stdout with chart statistics and the PNG as a data URL. Problems with
the input are reported on stderr with exit code 1.

Run as ``python -m rugplay_gateway.core.rendering.coingraph_generator``.
"""

import base64
import io
import json
import sys
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

DEFAULT_WIDTH = 1000
DEFAULT_HEIGHT = 600
MIN_SIZE = 200
MAX_SIZE = 4000
PADDING = 48
VOLUME_PANEL_RATIO = 0.25
GRID_LINES = 4

BACKGROUND = (15, 23, 42)
GRID = (51, 65, 85)
TEXT = (226, 232, 240)
UP = (34, 197, 94)
DOWN = (239, 68, 68)
NEUTRAL = (100, 116, 139)


class Candle(NamedTuple):
    time: Any
    open: float
    high: float
    low: float
    close: float

    @property
    def rising(self) -> bool:
        return self.close >= self.open


class GraphInputError(ValueError):
    """Render input is missing or malformed."""


def parse_candles(raw: Any) -> List[Candle]:
    """Parse the candlestick series, rejecting anything that is not OHLC data."""
    if not isinstance(raw, list) or not raw:
        raise GraphInputError("candlestickData must be a non-empty list")

    candles = []
    for index, item in enumerate(raw):
        try:
            candle = Candle(
                time=item.get("time"),
                open=float(item["open"]),
                high=float(item["high"]),
                low=float(item["low"]),
                close=float(item["close"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise GraphInputError(f"candlestickData[{index}] is not a valid candle: {e}") from e
        if candle.low > candle.high:
            raise GraphInputError(f"candlestickData[{index}] has low above high")
        candles.append(candle)
    return candles


def parse_volumes(raw: Any, candles: Sequence[Candle]) -> List[float]:
    """Align the volume series with the candles by time, falling back to position."""
    if raw is None:
        return [0.0] * len(candles)
    if not isinstance(raw, list):
        raise GraphInputError("volumeData must be a list")

    by_time: Dict[Any, float] = {}
    ordered: List[float] = []
    for index, item in enumerate(raw):
        try:
            volume = float(item["volume"])
        except (KeyError, TypeError, ValueError) as e:
            raise GraphInputError(f"volumeData[{index}] is not a valid volume: {e}") from e
        ordered.append(volume)
        if item.get("time") is not None:
            by_time[item["time"]] = volume

    volumes = []
    for index, candle in enumerate(candles):
        if candle.time in by_time:
            volumes.append(by_time[candle.time])
        elif index < len(ordered):
            volumes.append(ordered[index])
        else:
            volumes.append(0.0)
    return volumes


def _dimension(value: Optional[Any], default: int) -> int:
    if value is None:
        return default
    try:
        size = int(value)
    except (TypeError, ValueError) as e:
        raise GraphInputError(f"Invalid chart dimension: {value!r}") from e
    return max(MIN_SIZE, min(MAX_SIZE, size))


def _format_price(value: float) -> str:
    if value >= 1000:
        return f"{value:,.0f}"
    if value >= 1:
        return f"{value:.2f}"
    return f"{value:.6f}"


def render_chart(
    candles: Sequence[Candle],
    volumes: Sequence[float],
    title: str,
    size: Tuple[int, int],
) -> bytes:
    """
    Draw the chart and return PNG bytes.

    Args:
        candles: OHLC series, oldest first
        volumes: Volume per candle
        title: Caption drawn in the top-left corner
        size: Image width and height in pixels

    Returns:
        PNG encoded image
    """
    width, height = size
    image = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(image)

    left, right = PADDING, width - PADDING
    top, bottom = PADDING, height - PADDING
    volume_height = int((bottom - top) * VOLUME_PANEL_RATIO)
    price_bottom = bottom - volume_height - PADDING // 2

    low = min(c.low for c in candles)
    high = max(c.high for c in candles)
    span = (high - low) or (abs(high) or 1.0)

    def price_y(price: float) -> float:
        return price_bottom - (price - low) / span * (price_bottom - top)

    for step in range(GRID_LINES + 1):
        y = top + (price_bottom - top) * step / GRID_LINES
        draw.line([(left, y), (right, y)], fill=GRID, width=1)
        label = _format_price(high - span * step / GRID_LINES)
        draw.text((right + 4, y - 6), label, fill=TEXT)

    slot = (right - left) / len(candles)
    body_width = max(1.0, slot * 0.7)
    max_volume = max(volumes) if volumes else 0.0

    for index, candle in enumerate(candles):
        center = left + slot * (index + 0.5)
        colour = UP if candle.rising else DOWN

        draw.line([(center, price_y(candle.high)), (center, price_y(candle.low))], fill=colour)
        body_top = price_y(max(candle.open, candle.close))
        body_bottom = price_y(min(candle.open, candle.close))
        if body_bottom - body_top < 1:
            body_bottom = body_top + 1
        draw.rectangle(
            [center - body_width / 2, body_top, center + body_width / 2, body_bottom], fill=colour
        )

        if max_volume > 0:
            bar_height = volumes[index] / max_volume * volume_height
            draw.rectangle(
                [center - body_width / 2, bottom - bar_height, center + body_width / 2, bottom],
                fill=colour if volumes[index] > 0 else NEUTRAL,
            )

    draw.line([(left, bottom), (right, bottom)], fill=GRID, width=1)
    draw.text((left, PADDING // 3), title, fill=TEXT)

    output = io.BytesIO()
    image.save(output, format="PNG", optimize=True)
    return output.getvalue()


def build_graph_data(job: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a render job into the JSON document written to stdout."""
    if not isinstance(job, dict):
        raise GraphInputError("Render job must be a JSON object")

    candles = parse_candles(job.get("candlestickData"))
    volumes = parse_volumes(job.get("volumeData"), candles)
    coin = str(job.get("coin") or "")
    timeframe = str(job.get("timeframe") or "")
    size = (
        _dimension(job.get("width"), DEFAULT_WIDTH),
        _dimension(job.get("height"), DEFAULT_HEIGHT),
    )

    title = " ".join(part for part in (coin, timeframe) if part) or "Chart"
    png = render_chart(candles, volumes, title, size)

    first_open = candles[0].open
    last_close = candles[-1].close
    change = (last_close - first_open) / first_open * 100 if first_open else 0.0

    return {
        "coin": coin,
        "timeframe": timeframe,
        "width": size[0],
        "height": size[1],
        "candles": len(candles),
        "priceRange": {
            "low": min(c.low for c in candles),
            "high": max(c.high for c in candles),
        },
        "lastClose": last_close,
        "change": round(change, 4),
        "image": "data:image/png;base64," + base64.b64encode(png).decode("ascii"),
    }


def main() -> int:
    try:
        job = json.loads(sys.stdin.read())
        graph_data = build_graph_data(job)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON on stdin: {e}", file=sys.stderr)
        return 1
    except GraphInputError as e:
        print(str(e), file=sys.stderr)
        return 1

    sys.stdout.write(json.dumps(graph_data))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
