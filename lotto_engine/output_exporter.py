"""
Result export for the Lotto Engine.

Turns a ResultBatch into a DataFrame and writes it to CSV or JSON.
The engine itself returns structured data only; this module is for
callers that want files.
"""
import json
import os
from datetime import datetime
from typing import Any, Optional

import numpy as np
import pandas as pd
from loguru import logger

from lotto_engine.models import ResultBatch


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if obj is None:
        return None
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    elif isinstance(obj, dict):
        return {str(key): convert_numpy_types(value) for key, value in obj.items()}
    return obj


def batch_to_dataframe(batch: ResultBatch) -> pd.DataFrame:
    """
    One row per game: n1..nk, score, then the metric breakdown.
    """
    columns = [f"n{i}" for i in range(1, batch.pick + 1)]
    rows = []
    for game, score, metrics in zip(batch.games, batch.scores, batch.metrics):
        row = dict(zip(columns, game))
        row["score"] = score
        row.update(metrics.to_dict())
        rows.append(row)
    metric_columns = ["run_penalty", "parity_balance", "bucket_diversity",
                      "sum_deviation", "correlation_score", "frequency_score"]
    return pd.DataFrame(rows, columns=columns + ["score"] + metric_columns)


def export_batch(batch: ResultBatch, output_path: Optional[str] = None,
                 output_dir: str = "outputs") -> str:
    """
    Writes a ResultBatch to CSV or JSON, chosen by the file extension.

    Args:
        batch: The generated games.
        output_path: Target file. A timestamped CSV in output_dir when omitted.
        output_dir: Directory for the default file name.

    Returns:
        str: The path written.
    """
    if output_path is None:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        output_path = os.path.join(output_dir, f"lotto_games_{timestamp}.csv")

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if output_path.lower().endswith(".json"):
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(convert_numpy_types(batch.to_dict()), handle, indent=2)
    else:
        batch_to_dataframe(batch).to_csv(output_path, index=False)

    logger.info(f"{len(batch)} games exported to {output_path}")
    return output_path
