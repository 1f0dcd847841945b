from __future__ import annotations

import random
from typing import Iterable, List, Optional

QUIZ_OPTION_COUNT = 4


def generate_options(
    correct: str,
    deck_texts: Iterable[str],
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Build the multiple-choice set for one quiz item.

    正解 1 つ + 山札全体（出題キューではない）から重複なしで抽出した
    最大 3 つの誤答を、順序をシャッフルして返す。山札が 2 件未満なら正解のみ。
    """
    rng = rng or random.Random()
    texts = list(deck_texts)
    if len(texts) < 2:
        return [correct]

    pool: List[str] = []
    seen = {correct}
    for text in texts:
        if text in seen:
            continue
        seen.add(text)
        pool.append(text)

    distractors = rng.sample(pool, min(QUIZ_OPTION_COUNT - 1, len(pool)))
    options = distractors + [correct]
    rng.shuffle(options)
    return options
