from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def normalize_database_url(url: str) -> str:
    """Coerce a Postgres URL onto the asyncpg driver.

    asyncpg rejects libpq's ``sslmode``; it is translated to ``ssl``.
    """
    url = (url or "").strip()
    if not url:
        return url

    parts = urlsplit(url)
    scheme = parts.scheme

    if scheme in {"postgres", "postgresql", "postgresql+psycopg", "postgresql+psycopg2"}:
        scheme = "postgresql+asyncpg"

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    sslmode_key = next((key for key in query if key.lower() == "sslmode"), None)
    sslmode = query.pop(sslmode_key, None) if sslmode_key else None
    if sslmode is not None and "ssl" not in query:
        # asyncpg accepts the same mode names under ``ssl``
        query["ssl"] = sslmode.lower().strip()

    new_query = urlencode(query, doseq=True)
    return urlunsplit((scheme, parts.netloc, parts.path, new_query, parts.fragment))
