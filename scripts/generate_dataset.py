"""Generate synthetic red and white wine-quality files for offline runs."""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

HEADER = [
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


@dataclass
class DatasetConfig:
    red_samples: int = 400
    white_samples: int = 1200
    seed: int = 42
    outdir: Path = Path("data")


def simulate_wines(rng: np.random.Generator, samples: int, red: bool) -> pd.DataFrame:
    alcohol = np.clip(rng.normal(10.4, 1.1, samples), 8.0, 14.9)
    volatile_acidity = np.clip(rng.normal(0.53 if red else 0.28, 0.15 if red else 0.1, samples), 0.08, 1.6)
    sulphates = np.clip(rng.normal(0.66 if red else 0.49, 0.15, samples), 0.22, 2.0)
    residual_sugar = np.clip(rng.gamma(2.0, 1.3 if red else 3.2, samples), 0.6, 65.0)
    free_so2 = np.clip(rng.normal(16 if red else 35, 9 if red else 15, samples), 1, 290)
    total_so2 = np.clip(free_so2 * rng.uniform(2.0, 4.0, samples), 6, 440)

    latent = (
        0.9 * (alcohol - 10.4)
        - 3.0 * (volatile_acidity - volatile_acidity.mean())
        + 1.2 * (sulphates - sulphates.mean())
        + rng.normal(0, 0.7, samples)
    )
    quality = np.clip(np.round(5.8 + latent), 3, 9).astype(int)

    return pd.DataFrame(
        {
            "fixed acidity": np.round(np.clip(rng.normal(8.3 if red else 6.9, 1.2, samples), 3.8, 15.9), 1),
            "volatile acidity": np.round(volatile_acidity, 3),
            "citric acid": np.round(np.clip(rng.normal(0.3, 0.15, samples), 0.0, 1.66), 2),
            "residual sugar": np.round(residual_sugar, 1),
            "chlorides": np.round(np.clip(rng.normal(0.087 if red else 0.046, 0.02, samples), 0.009, 0.61), 3),
            "free sulfur dioxide": np.round(free_so2),
            "total sulfur dioxide": np.round(total_so2),
            "density": np.round(np.clip(rng.normal(0.9967 if red else 0.994, 0.002, samples), 0.987, 1.039), 5),
            "pH": np.round(np.clip(rng.normal(3.31 if red else 3.19, 0.15, samples), 2.72, 4.01), 2),
            "sulphates": np.round(sulphates, 2),
            "alcohol": np.round(alcohol, 1),
            "quality": quality,
        },
        columns=HEADER,
    )


def main(config: DatasetConfig) -> None:
    rng = np.random.default_rng(config.seed)
    config.outdir.mkdir(parents=True, exist_ok=True)
    for name, samples, red in (("red", config.red_samples, True), ("white", config.white_samples, False)):
        df = simulate_wines(rng, samples, red)
        outfile = config.outdir / f"winequality-{name}.csv"
        df.to_csv(outfile, sep=";", index=False)
        print(f"Dataset written to {outfile} with {len(df)} rows")


def parse_args() -> DatasetConfig:
    parser = argparse.ArgumentParser(description="Generate synthetic wine-quality CSV files")
    parser.add_argument("--red", type=int, default=DatasetConfig.red_samples, help="Number of red wine rows")
    parser.add_argument("--white", type=int, default=DatasetConfig.white_samples, help="Number of white wine rows")
    parser.add_argument("--seed", type=int, default=DatasetConfig.seed)
    parser.add_argument("--outdir", type=Path, default=DatasetConfig.outdir)
    args = parser.parse_args()
    return DatasetConfig(red_samples=args.red, white_samples=args.white, seed=args.seed, outdir=args.outdir)


if __name__ == "__main__":
    main(parse_args())
