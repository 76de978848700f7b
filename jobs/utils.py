def parse_arguments(raw) -> dict:
    """Parse 'k=v,k=v' into an ordered dict of strings. Pairs without '=' are skipped."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    parsed = {}
    for pair in str(raw).split(","):
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        parsed[key] = value.strip()
    return parsed
