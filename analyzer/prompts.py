import json

from analyzer.analysis.models import AnalysisResult
from analyzer.dataset import Dataset

_INSTRUCTIONS = """\
You are a careful social science methodologist helping a researcher read the
output of a statistical analysis. You receive the dataset's column names and
the computed statistics. Your job is to:

1. Explain in plain language what the statistics say about the data.
2. Point out caveats (small samples, missing data, assumptions of the test).
3. Return your answer as **JSON only** (no markdown fences) with one key:
   - "interpretation": one paragraph, at most 80 words

## Rules
- Only use numbers that appear in the statistics. Never invent values.
- Do not claim causation from association tests.
- If the statistics contain an error, say the analysis could not be completed.
"""


def build_system_prompt() -> str:
    return _INSTRUCTIONS


def build_user_message(dataset: Dataset, result: AnalysisResult) -> str:
    payload = {
        "dataset": {
            "columns": list(dataset.headers),
            "rows": dataset.row_count,
        },
        "analysis": result.title,
        "statistics": result.stats,
        "warnings": result.warnings,
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)
