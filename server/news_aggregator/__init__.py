"""
Crypto News Aggregator

Polls several crypto news APIs, merges their stories into one de-duplicated
feed, enriches each story with sentiment, reliability and impact, and serves
market snapshots and price history alongside it.

Architecture:
    [CryptoCompare, CryptoPanic, CoinGecko] -> providers -> aggregator
        -> sentiment.enrichment -> feed (reconciled snapshot) -> views / export / alerts
    CoinGecko market API -> market.client -> feed

Components:
    - providers: one adapter per news API, normalizing into NewsItem
    - aggregator: concurrent fan-out with caching, retry and de-duplication
    - sentiment: Groq classifier plus heuristic reliability / impact scoring
    - market: cached, rate-limited snapshot and price-history client
    - scheduler: interval polling with superseded-cycle discarding
    - feed: the FeedService entry point and the PipelineContext it owns
"""
