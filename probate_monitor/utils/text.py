import re
from datetime import date, datetime
from typing import Optional

DATE_FORMATS = ['%m/%d/%Y', '%m-%d-%Y', '%Y-%m-%d', '%m/%d/%y', '%B %d, %Y', '%b %d, %Y']

DATE_PATTERN = re.compile(
    r'(\d{1,2}/\d{1,2}/\d{4}|\d{1,2}-\d{1,2}-\d{4}|\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{2}\b|[A-Z][a-z]+ \d{1,2}, \d{4})'
)

def clean_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty results become None"""
    if not text:
        return None
    cleaned = re.sub(r'\s+', ' ', text).strip()
    return cleaned or None

def parse_date(text: Optional[str]) -> Optional[date]:
    """Find and parse the first US-style date in ``text``"""
    if not text:
        return None
    for match in DATE_PATTERN.findall(text):
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(match, fmt).date()
            except ValueError:
                continue
    return None

def parse_money(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    match = re.search(r'\$?\s*([0-9][0-9,]*(?:\.[0-9]{2})?)', text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(',', ''))
    except ValueError:
        return None

STATE_CODES = {
    'AL', 'AK', 'AZ', 'AR', 'CA', 'CO', 'CT', 'DE', 'DC', 'FL', 'GA', 'HI', 'ID', 'IL', 'IN', 'IA',
    'KS', 'KY', 'LA', 'ME', 'MD', 'MA', 'MI', 'MN', 'MS', 'MO', 'MT', 'NE', 'NV', 'NH', 'NJ', 'NM',
    'NY', 'NC', 'ND', 'OH', 'OK', 'OR', 'PA', 'RI', 'SC', 'SD', 'TN', 'TX', 'UT', 'VT', 'VA', 'WA',
    'WV', 'WI', 'WY',
}

# Abbreviation -> full word
STREET_TYPES = {
    'ST': 'STREET', 'AVE': 'AVENUE', 'RD': 'ROAD', 'DR': 'DRIVE', 'LN': 'LANE', 'CT': 'COURT',
    'BLVD': 'BOULEVARD', 'PL': 'PLACE', 'CIR': 'CIRCLE', 'PKWY': 'PARKWAY', 'HWY': 'HIGHWAY',
    'TRL': 'TRAIL', 'TER': 'TERRACE', 'WAY': 'WAY', 'PT': 'POINT', 'XING': 'CROSSING',
}

DIRECTIONALS = {
    'N': 'NORTH', 'S': 'SOUTH', 'E': 'EAST', 'W': 'WEST',
    'NE': 'NORTHEAST', 'NW': 'NORTHWEST', 'SE': 'SOUTHEAST', 'SW': 'SOUTHWEST',
}
