"""
Spotlight Cache Service

- Polls the spotlight feed on a fixed interval (first run shortly after start-up)
- Downloads landscape/portrait images into `<cache>/images/` and writes `_q<quality>` JPEG variants
- Keeps the entry list in memory and in `<cache>/data/spotlight_cache.json`
- Serves /api/spotlight-data, /api/cached-images/<file>, / and /health
"""
