from datetime import datetime, timedelta, timezone

import requests
from flask import current_app

NEWS_API_URL = 'https://newsapi.org/v2/top-headlines'

_FALLBACK_ARTICLES = [
    (2, 'Stock Market Reaches New Heights Amid Economic Recovery',
     'Major indices show strong performance as investors remain optimistic about economic growth prospects.',
     'Financial Times', 'Markets'),
    (5, 'Central Bank Maintains Interest Rates',
     'The central bank decided to keep interest rates unchanged, citing stable inflation and economic conditions.',
     'Economic Daily', 'Economy'),
    (8, 'Tech Stocks Lead Market Rally',
     'Technology sector shows robust growth with major companies reporting strong quarterly earnings.',
     'Tech Finance', 'Technology'),
    (12, 'Gold Prices Stabilize After Recent Volatility',
     'Precious metals market shows signs of stabilization as investors reassess their portfolios.',
     'Commodity News', 'Commodities'),
    (24, 'Personal Finance Tips for the New Year',
     'Financial experts share strategies for better money management and achieving savings goals.',
     'Money Matters', 'Personal Finance'),
]


def fallback_articles(now=None):
    now = now or datetime.now(timezone.utc)
    return [{
        'id': idx,
        'title': title,
        'description': description,
        'source': source,
        'publishedAt': (now - timedelta(hours=hours_ago)).isoformat(),
        'url': f'https://example.com/news/{idx}',
        'category': category,
    } for idx, (hours_ago, title, description, source, category) in enumerate(_FALLBACK_ARTICLES, start=1)]


def filter_news_by_category(articles, category):
    wanted = category.lower()
    return [a for a in articles if a['category'].lower() == wanted]


def _from_news_api(payload):
    return [{
        'id': idx,
        'title': a.get('title'),
        'description': a.get('description') or 'No description available',
        'source': (a.get('source') or {}).get('name'),
        'publishedAt': a.get('publishedAt'),
        'url': a.get('url'),
        'category': 'Business',
    } for idx, a in enumerate(payload.get('articles', []))]


def fetch_financial_news(api_key=None, timeout=5):
    """Top business headlines from NewsAPI, or the static articles when that is not possible."""
    log = current_app.logger
    if not api_key:
        log.warning('No NEWS_API_KEY configured, serving fallback news')
    else:
        try:
            resp = requests.get(NEWS_API_URL, params={'category': 'business', 'country': 'us', 'apiKey': api_key},
                                timeout=timeout)
            resp.raise_for_status()
            payload = resp.json()
            if payload.get('status') == 'ok':
                articles = _from_news_api(payload)
                log.info('Fetched %d articles from NewsAPI', len(articles))
                return {'articles': articles, 'totalResults': payload.get('totalResults', len(articles))}
            log.warning('NewsAPI answered with status %r, serving fallback news', payload.get('status'))
        except (requests.RequestException, ValueError) as exc:
            log.warning('NewsAPI request failed (%s), serving fallback news', exc)
    articles = fallback_articles()
    return {'articles': articles, 'totalResults': len(articles)}
