from __future__ import annotations

from pathlib import Path
import sys

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

import numpy as np
import pandas as pd
import pytest

RAW_HEADER = [
    "fixed acidity",
    "volatile acidity",
    "citric acid",
    "residual sugar",
    "chlorides",
    "free sulfur dioxide",
    "total sulfur dioxide",
    "density",
    "pH",
    "sulphates",
    "alcohol",
    "quality",
]


def make_wines(samples: int, seed: int) -> pd.DataFrame:
    """Wine-like rows whose quality is driven almost entirely by alcohol."""
    rng = np.random.default_rng(seed)
    data = {column: np.round(rng.uniform(0.1, 1.0, samples), 3) for column in RAW_HEADER[:-2]}
    alcohol = np.round(rng.uniform(8.5, 13.5, samples), 1)
    quality = np.where(alcohol < 10.5, rng.choice([4, 5], samples), rng.choice([6, 7], samples))
    noise = rng.random(samples) < 0.05
    quality[noise] = 11 - quality[noise]
    data["alcohol"] = alcohol
    data["quality"] = quality
    return pd.DataFrame(data, columns=RAW_HEADER)


@pytest.fixture
def wine_files(tmp_path: Path) -> tuple[Path, Path]:
    red_path = tmp_path / "winequality-red.csv"
    white_path = tmp_path / "winequality-white.csv"
    make_wines(160, seed=1).to_csv(red_path, sep=";", index=False)
    make_wines(240, seed=2).to_csv(white_path, sep=";", index=False)
    return red_path, white_path
