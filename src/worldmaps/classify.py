"""Break-based value classification for choropleth layers.

A BreakScheme buckets numeric values into manually chosen intervals and maps
each bucket to a label and a color. Intervals are closed on the left,
[b_i, b_i+1), and the outermost buckets are unbounded: anything below the
second break lands in the first bucket and anything at or above the
second-to-last break lands in the last one.
"""

import bisect
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import matplotlib
import matplotlib.colors as mcolors
import numpy as np
import pandas as pd

from worldmaps.exceptions import ClassificationError


def _format_break(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def default_labels(breaks: Sequence[float]) -> List[str]:
    """Build legend labels for a break list.

    >>> default_labels([-math.inf, 1000, 2000, math.inf])
    ['Less than 1000', '1000 to 2000', '2000 or more']
    """
    n = len(breaks) - 1
    if n < 1:
        raise ClassificationError("At least two breaks are needed to build labels")
    if n == 1:
        return ["All values"]

    labels = [f"Less than {_format_break(breaks[1])}"]
    for lo, hi in zip(breaks[1:-2], breaks[2:-1]):
        labels.append(f"{_format_break(lo)} to {_format_break(hi)}")
    labels.append(f"{_format_break(breaks[-2])} or more")
    return labels


@dataclass(frozen=True)
class BreakScheme:
    """Validated break/label/palette configuration.

    Attributes:
        breaks: Strictly increasing bucket edges, typically starting at
            -inf and ending at +inf
        labels: One legend label per bucket
        palette: Name of a matplotlib colormap, or one color per bucket
    """

    breaks: Sequence[float]
    labels: Sequence[str]
    palette: Union[str, Sequence[str]] = "viridis"
    colors: List[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        breaks = [float(b) for b in self.breaks]
        if len(breaks) < 2:
            raise ClassificationError(f"Need at least two breaks, got {len(breaks)}")
        if any(math.isnan(b) for b in breaks):
            raise ClassificationError(f"Breaks must not contain NaN: {breaks}")
        for lo, hi in zip(breaks, breaks[1:]):
            if not hi > lo:
                raise ClassificationError(
                    f"Breaks must increase monotonically, but {hi} follows {lo}: {breaks}"
                )
        if len(self.labels) != len(breaks) - 1:
            raise ClassificationError(
                f"{len(breaks)} breaks define {len(breaks) - 1} buckets "
                f"but {len(self.labels)} labels were given"
            )

        object.__setattr__(self, "breaks", tuple(breaks))
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "colors", self._resolve_colors())

    def _resolve_colors(self) -> List[str]:
        n = len(self.labels)
        if isinstance(self.palette, str):
            try:
                cmap = matplotlib.colormaps[self.palette]
            except KeyError:
                raise ClassificationError(f"Unknown palette '{self.palette}'")
            samples = np.linspace(0.0, 1.0, n) if n > 1 else [0.5]
            return [mcolors.to_hex(cmap(x)) for x in samples]

        colors = list(self.palette)
        if len(colors) != n:
            raise ClassificationError(
                f"Palette has {len(colors)} colors for {n} buckets"
            )
        for color in colors:
            if not mcolors.is_color_like(color):
                raise ClassificationError(f"Invalid palette color: {color!r}")
        return [mcolors.to_hex(c) for c in colors]

    @property
    def interior_breaks(self) -> Sequence[float]:
        return self.breaks[1:-1]

    def bucket_index(self, value: Optional[float]) -> Optional[int]:
        """Return the bucket index for value, or None for missing values."""
        if pd.isna(value):
            return None
        return bisect.bisect_right(self.interior_breaks, value)

    def classify(self, value: Optional[float]) -> Optional[str]:
        """Return the bucket label for value, or None for missing values."""
        index = self.bucket_index(value)
        return None if index is None else self.labels[index]

    def classify_series(self, values: pd.Series) -> pd.Series:
        """Classify a whole column into an ordered categorical of labels."""
        numeric = pd.to_numeric(values, errors="coerce")
        indexes = np.searchsorted(
            np.asarray(self.interior_breaks, dtype=float),
            numeric.to_numpy(dtype=float, na_value=np.nan),
            side="right",
        )
        codes = np.where(numeric.isna().to_numpy(), -1, indexes)
        categorical = pd.Categorical.from_codes(
            codes, categories=list(self.labels), ordered=True
        )
        return pd.Series(categorical, index=values.index, name=values.name)

    def color_for(self, label: Optional[str], missing_color: str) -> str:
        if pd.isna(label):
            return missing_color
        return self.colors[self.labels.index(label)]
