"""Prompts for image-similarity search and the parser for the model's ranked ID list.

The ranking call has no schema: the model is asked to answer with a bare
comma-separated list of IDs. ``parse_ranked_ids`` and ``select_ranked`` are
the only place that contract is interpreted.
"""
from typing import Iterable, Sequence

IMAGE_ANALYSIS_PROMPT = (
    "Analise esta imagem e descreva: 1) As pessoas (quantas, expressões, roupas) "
    "2) O ambiente e cenário 3) A ocasião/evento 4) Cores predominantes "
    "5) Elementos religiosos se houver. Seja detalhado e objetivo."
)

NO_DESCRIPTION = "Sem descrição"
NO_TAGS = "Sem tags"


def candidate_line(index: int, candidate) -> str:
    tags = ", ".join(candidate.tags or [])
    return (
        f"{index}. ID: {candidate.id} - {candidate.description or NO_DESCRIPTION}"
        f" - Tags: {tags or NO_TAGS}"
    )


def build_ranking_prompt(image_description: str, candidates: Sequence, limit: int = 6) -> str:
    """Enumerate every candidate and ask for the IDs of the most similar ones."""
    listing = "\n".join(candidate_line(i, c) for i, c in enumerate(candidates))
    return (
        f'Dada esta descrição de uma imagem: "{image_description}"\n'
        f"\n"
        f"Compare com estas fotos e retorne os IDs das {limit} fotos mais similares, "
        f"ordenadas por relevância (mais similar primeiro):\n"
        f"\n"
        f"{listing}\n"
        f"\n"
        f"Retorne APENAS os IDs das fotos mais similares, separados por vírgula. "
        f"Exemplo: uuid1,uuid2,uuid3"
    )


def parse_ranked_ids(text: str) -> list[str]:
    """Split a comma-separated answer into trimmed, non-empty tokens (order kept)."""
    if not text:
        return []
    return [token.strip() for token in text.split(",") if token.strip()]


def select_ranked(ids: Iterable[str], candidates: Sequence, limit: int = 6) -> list:
    """Map ranked IDs back to candidates.

    Unknown IDs are skipped, a repeated ID keeps its first position, and the
    result is capped at ``limit``.
    """
    by_id = {str(c.id): c for c in candidates}
    selected = []
    seen = set()
    for candidate_id in ids:
        candidate = by_id.get(candidate_id)
        if candidate is None or candidate_id in seen:
            continue
        seen.add(candidate_id)
        selected.append(candidate)
        if len(selected) >= limit:
            break
    return selected
