"""Case-insensitive keyword filter over stored media metadata."""


def matches_query(record, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    texts = [record.description or "", record.ai_description or ""]
    texts.extend(record.tags or [])
    return any(needle in text.lower() for text in texts)


def filter_media(records, query: str) -> list:
    if not query or not query.strip():
        return list(records)
    return [r for r in records if matches_query(r, query)]
