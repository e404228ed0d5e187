import os
import re
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from loguru import logger

from lotto_engine.models import Draw

COLUMN_PATTERNS = {
    "concurso": "contest_id", "contest": "contest_id", "contest_number": "contest_id",
    "contestnumber": "contest_id", "contest_id": "contest_id", "draw": "contest_id",
    "data": "date", "date": "date", "draw_date": "date", "drawdate": "date",
    "data sorteio": "date", "data_sorteio": "date",
    "dezenas": "numbers", "numbers": "numbers", "drawn_numbers": "numbers",
    "drawnnumbers": "numbers",
}
BALL_COLUMN = re.compile(r"^(?:n|ball|bola|dezena|number|num)[ _]?(\d+)$")


class DataLoader:
    """
    Loads draw history from CSV files, DataFrames or plain records.

    Draws are always returned most-recent-first, ordered by date when every
    row has one and by contest id otherwise.
    """

    def __init__(self, pool_size: Optional[int] = None):
        self.pool_size = pool_size
        logger.info("DataLoader initialized.")

    def load_csv(self, file_path: str) -> List[Draw]:
        """
        Loads draws from a CSV file.

        Args:
            file_path: Path to a CSV with a contest column, an optional date
                column, and either ball columns (n1..nk) or a delimited
                'numbers' column.

        Returns:
            List[Draw]: Draws ordered most-recent-first.
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Draw history file not found: {file_path}")
        df = pd.read_csv(file_path)
        logger.info(f"Read {len(df)} rows from {file_path}")
        return self.from_dataframe(df)

    def from_dataframe(self, df: pd.DataFrame) -> List[Draw]:
        if df.empty:
            logger.warning("Draw history is empty.")
            return []
        data = self._standardize_column_names(df.copy())
        numbers = self._extract_numbers(data)

        if "contest_id" in data.columns:
            contest_ids = pd.to_numeric(data["contest_id"], errors="coerce")
        else:
            logger.warning("No contest column found. Numbering draws by row order.")
            contest_ids = pd.Series(range(1, len(data) + 1), index=data.index)

        dates = (
            pd.to_datetime(data["date"], errors="coerce", dayfirst=self._looks_dayfirst(data["date"]))
            if "date" in data.columns else pd.Series(pd.NaT, index=data.index)
        )

        draws = []
        dropped = 0
        for index in data.index:
            row_numbers = numbers[index]
            contest = contest_ids[index]
            if (not row_numbers or pd.isna(contest) or len(set(row_numbers)) != len(row_numbers)
                    or not self._in_range(row_numbers)):
                dropped += 1
                continue
            draw_date = dates[index].date() if pd.notna(dates[index]) else None
            draws.append(Draw(contest_id=int(contest), numbers=frozenset(row_numbers), date=draw_date))

        if dropped:
            logger.warning(f"Dropped {dropped} rows with missing, repeated or out-of-range numbers.")
        return self._order(draws)

    def from_records(self, records: Iterable[Dict[str, Any]]) -> List[Draw]:
        return self.from_dataframe(pd.DataFrame(list(records)))

    def _in_range(self, numbers: List[int]) -> bool:
        if self.pool_size is None:
            return all(n >= 1 for n in numbers)
        return all(1 <= n <= self.pool_size for n in numbers)

    @staticmethod
    def _order(draws: List[Draw]) -> List[Draw]:
        if draws and all(d.date is not None for d in draws):
            return sorted(draws, key=lambda d: (d.date, d.contest_id), reverse=True)
        return sorted(draws, key=lambda d: d.contest_id, reverse=True)

    @staticmethod
    def _looks_dayfirst(column: pd.Series) -> bool:
        sample = column.dropna().astype(str).head(20)
        return bool(sample.str.match(r"^\d{1,2}/\d{1,2}/\d{4}$").all()) if not sample.empty else False

    @staticmethod
    def _standardize_column_names(data: pd.DataFrame) -> pd.DataFrame:
        rename_map = {}
        for col in data.columns:
            col_lower = str(col).strip().lower()
            if col_lower in COLUMN_PATTERNS:
                rename_map[col] = COLUMN_PATTERNS[col_lower]
                continue
            match = BALL_COLUMN.match(col_lower)
            if match:
                rename_map[col] = f"n{int(match.group(1))}"
        if rename_map:
            logger.debug(f"Standardizing column names: {rename_map}")
            data = data.rename(columns=rename_map)
        return data

    @staticmethod
    def _extract_numbers(data: pd.DataFrame) -> Dict[Any, List[int]]:
        ball_cols = sorted(
            (c for c in data.columns if re.fullmatch(r"n\d+", str(c))),
            key=lambda c: int(str(c)[1:])
        )
        result: Dict[Any, List[int]] = {}
        if ball_cols:
            balls = data[ball_cols].apply(pd.to_numeric, errors="coerce")
            for index, row in balls.iterrows():
                values = row.dropna()
                # A partially filled row is a broken record
                result[index] = [int(v) for v in values] if len(values) == len(ball_cols) else []
        elif "numbers" in data.columns:
            for index, value in data["numbers"].items():
                if isinstance(value, (list, tuple, set, frozenset)):
                    result[index] = [int(v) for v in value]
                elif pd.isna(value):
                    result[index] = []
                else:
                    result[index] = [int(v) for v in re.findall(r"\d+", str(value))]
        else:
            raise ValueError("Draw history needs ball columns (n1..nk) or a 'numbers' column.")
        return result


def get_data_loader(pool_size: Optional[int] = None) -> DataLoader:
    """
    Factory function to get an instance of DataLoader.
    """
    return DataLoader(pool_size)
