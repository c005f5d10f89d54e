from __future__ import annotations

import random
from typing import List, Sequence

# Used when a round asks for a question past the end of the queue
EXTRA_QUESTION = "Pergunta Extra"

BASE_QUESTIONS: Sequence[str] = (
    "Qual a melhor comida para um dia chuvoso?",
    "O que você faria com 1 milhão de reais agora?",
    "Qual o pior presente de amigo secreto?",
    "Uma música que todo mundo finge que não gosta mas ama?",
    "O lugar mais estranho onde você já dormiu?",
    "Qual superpoder seria o mais útil no trabalho?",
    "O que não pode faltar na geladeira?",
    "Um filme que te fez chorar?",
    "Qual a pior tarefa doméstica?",
    "O que você compraria se fosse rico e excêntrico?",
    "Qual animal seria o melhor presidente?",
    "Uma gíria que você usa muito?",
    "O melhor sabor de pizza?",
    "O que te irrita no trânsito?",
    "Qual a melhor rede social antiga?",
)


def draw_questions(
    count: int,
    theme: str = "Geral",
    *,
    pool: Sequence[str] = BASE_QUESTIONS,
    rng: random.Random | None = None,
) -> List[str]:
    """
    Shuffle the pool and repeat it until `count` questions are drawn.
    Each repeat of the pool is shuffled again.
    `theme` is accepted for the room settings but the pool is not themed yet.
    """
    if count <= 0:
        return []
    if not pool:
        raise ValueError("Question pool is empty")

    rng = rng or random.Random()
    out: List[str] = []
    while len(out) < count:
        batch = list(pool)
        rng.shuffle(batch)
        out.extend(batch)
    return out[:count]


def question_for_round(queue: Sequence[str], round_no: int) -> str:
    if 1 <= round_no <= len(queue):
        return queue[round_no - 1]
    return EXTRA_QUESTION
