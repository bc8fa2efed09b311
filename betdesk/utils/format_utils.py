"""
Display helpers shared by routes and CLI output
"""

from datetime import datetime, timezone

GAME_TYPE_LABELS = {
    'coin_flip': 'Coin Flip',
    'satamatka': 'Satamatka',
    'team_match': 'Team Match',
    'cricket_toss': 'Cricket Toss',
    'jodi': 'Jodi',
    'harf': 'Harf',
    'crossing': 'Crossing',
    'odd_even': 'Odd/Even',
}


def format_currency(paise) -> str:
    """Render an integer paise amount as rupees, e.g. 123456 -> '₹1,234.56'"""
    paise = int(paise or 0)
    sign = '-' if paise < 0 else ''
    rupees, rem = divmod(abs(paise), 100)
    return f"{sign}₹{rupees:,}.{rem:02d}"


def format_game_type(game_type: str) -> str:
    if not game_type:
        return ''
    return GAME_TYPE_LABELS.get(game_type, game_type.replace('_', ' ').title())


def parse_datetime(value):
    """Parse an ISO-8601 string into a naive UTC datetime; None passes through"""
    if value is None or isinstance(value, datetime):
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
