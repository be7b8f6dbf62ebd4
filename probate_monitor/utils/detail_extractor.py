from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup
from loguru import logger
from soupsieve import SelectorSyntaxError

from probate_monitor.core.config import settings
from probate_monitor.core.errors import ExtractionFieldMissing, NavigationFailure
from probate_monitor.core.sites import FieldStrategy, SiteConfig
from probate_monitor.schemas.scraped_case import PropertyCandidate, ScrapedContact
from probate_monitor.services.matching import name_score
from probate_monitor.utils.artifacts import ArtifactStore
from probate_monitor.utils.retry import CancellationToken, retry
from probate_monitor.utils.text import clean_text, parse_date, parse_money

MIN_FIELD_LENGTH = 3
LABEL_ELEMENTS = ['th', 'td', 'dt', 'label', 'strong', 'b', 'span']
CONTACT_FIELDS = ('petitioner', 'executor', 'administrator')
PARCEL_QUERY_KEYS = ('parcel', 'parcelid', 'keyvalue', 'pin')


def _value_after_label(element, label_text: str) -> Optional[str]:
    """Value for a label element: inline remainder, else the adjacent cell/element"""
    text = clean_text(element.get_text(" ", strip=True)) or ""
    remainder = text[len(label_text):].strip(" :- ")
    if remainder:
        return remainder
    if element.name in ('td', 'th'):
        sibling = element.find_next_sibling(['td', 'th'])
    elif element.name == 'dt':
        sibling = element.find_next_sibling('dd')
    else:
        sibling = element.find_next_sibling()
    if sibling is None and element.parent is not None and element.parent.name not in ('tr', 'body'):
        sibling = element.parent.find_next_sibling()
    return clean_text(sibling.get_text(" ", strip=True)) if sibling is not None else None


def _by_label(soup: BeautifulSoup, label_text: str, min_length: int) -> Optional[str]:
    target = label_text.lower()
    for element in soup.find_all(LABEL_ELEMENTS):
        text = (clean_text(element.get_text(" ", strip=True)) or "").lower()
        if not text.startswith(target):
            continue
        value = _value_after_label(element, label_text)
        if value and len(value) > min_length:
            return value
    return None


def _by_css(soup: BeautifulSoup, selector: str, min_length: int) -> Optional[str]:
    try:
        element = soup.select_one(selector)
    except SelectorSyntaxError as e:
        logger.warning(f"Invalid selector {selector}: {e}")
        return None
    if element is None:
        return None
    value = clean_text(element.get_text(" ", strip=True))
    return value if value and len(value) > min_length else None


def extract_field(soup: BeautifulSoup, strategies: List[FieldStrategy], min_length: int = MIN_FIELD_LENGTH) -> Optional[str]:
    """Evaluate strategies in order; the first value longer than min_length wins"""
    for strategy in strategies:
        if strategy.kind == "label":
            value = _by_label(soup, strategy.value, min_length)
        else:
            value = _by_css(soup, strategy.value, min_length)
        if value:
            return value
    return None


def extract_fields(soup: BeautifulSoup, field_map: Dict[str, List[FieldStrategy]]) -> Dict[str, str]:
    """Run every field's strategy list; fields with no acceptable value are left out"""
    found = {}
    for field_name, strategies in field_map.items():
        value = extract_field(soup, strategies)
        if value is None:
            logger.debug(str(ExtractionFieldMissing(field_name)))
            continue
        found[field_name] = value
    return found


def parcel_id_from_link(text: Optional[str], href: str) -> Optional[str]:
    """Parcel id from link text, else a parcel-like query parameter, else the last path segment"""
    text = clean_text(text)
    if text and any(ch.isdigit() for ch in text):
        return text
    query = parse_qs(urlparse(href).query)
    for key, values in query.items():
        if key.lower() in PARCEL_QUERY_KEYS and values and values[0].strip():
            return values[0].strip()
    # Page names such as Detail.aspx identify nothing
    segments = [segment for segment in urlparse(href).path.split("/") if segment.strip()]
    if segments and "." not in segments[-1]:
        return segments[-1].strip()
    return None


def property_from_fields(parcel_id: str, county: Optional[str], url: Optional[str], fields: Dict[str, str]) -> PropertyCandidate:
    return PropertyCandidate(
        parcel_id=parcel_id,
        county=county,
        situs_address=fields.get('situs_address'),
        tax_mailing_address=fields.get('tax_mailing_address'),
        current_owner=fields.get('current_owner'),
        last_sale_date=parse_date(fields.get('last_sale_date')),
        assessed_value=parse_money(fields.get('assessed_value')),
        legal_description=fields.get('legal_description'),
        qpublic_url=url,
        match_confidence=1.0,
    )


class DetailExtractor:
    """Pulls structured case fields (and linked property pages) out of a detail page"""

    def __init__(self, artifacts: ArtifactStore, max_property_links: int = None,
                 retry_attempts: int = None, retry_base_delay: float = None):
        self.artifacts = artifacts
        self.max_property_links = max_property_links or settings.CRAWL_MAX_PROPERTY_LINKS
        self.retry_attempts = retry_attempts or settings.RETRY_MAX_ATTEMPTS
        self.retry_base_delay = settings.RETRY_BASE_DELAY_MS / 1000 if retry_base_delay is None else retry_base_delay
    
    async def extract(self, page, case_number: str, site: SiteConfig, browser=None,
                      token: Optional[CancellationToken] = None, decedent_name: Optional[str] = None) -> Dict[str, Any]:
        """Return a partial ScrapedCase dict for the page currently loaded in ``page``"""
        html = await page.content()
        soup = BeautifulSoup(html, 'html.parser')
        fields = extract_fields(soup, site.detail_fields)
        logger.info(f"Extracted {len(fields)} fields for case {case_number}: {sorted(fields)}")
        
        details: Dict[str, Any] = {'court_url': page.url}
        contacts = [ScrapedContact(type=field, name=fields[field]) for field in CONTACT_FIELDS if field in fields]
        if contacts:
            details['contacts'] = contacts
        if 'decedent_address' in fields:
            details['decedent_address'] = fields['decedent_address']
        if 'attorney' in fields:
            details['attorney'] = fields['attorney']
        filing_date = parse_date(fields.get('filing_date'))
        if filing_date:
            details['filing_date'] = filing_date
        estate_value = parse_money(fields.get('estate_value'))
        if estate_value is not None:
            details['estate_value'] = estate_value
        
        details['raw_html_path'] = self.artifacts.save_html("case", case_number, html)
        details['raw_pdf_path'] = await self.artifacts.save_pdf("case", case_number, page)

        properties = []
        if site.source_kind == "property":
            # Property-record detail pages are the parcel page itself
            parcel_fields = extract_fields(soup, site.property_fields)
            parcel = property_from_fields(case_number, site.county, page.url, parcel_fields)
            properties.append(parcel)
            if 'decedent_address' not in details and parcel.situs_address:
                details['decedent_address'] = parcel.situs_address
            if 'filing_date' not in details and parcel.last_sale_date:
                details['filing_date'] = parcel.last_sale_date
        if browser is not None:
            properties.extend(await self.extract_properties(soup, page.url, site, browser, token, decedent_name))
        if properties:
            details['properties'] = properties
        return details
    
    def find_property_links(self, soup: BeautifulSoup, base_url: str, site: SiteConfig) -> List[Dict[str, str]]:
        """First N distinct property links, in document order"""
        links = []
        seen = set()
        for selector in site.property_link_selectors:
            try:
                anchors = soup.select(selector)
            except SelectorSyntaxError as e:
                logger.warning(f"Invalid property link selector {selector}: {e}")
                continue
            for anchor in anchors:
                href = anchor.get('href')
                if not href:
                    continue
                url = urljoin(base_url, href)
                if url in seen:
                    continue
                seen.add(url)
                links.append({'url': url, 'text': anchor.get_text(" ", strip=True)})
        return links[:self.max_property_links]
    
    async def extract_properties(self, soup: BeautifulSoup, base_url: str, site: SiteConfig, browser,
                                 token: Optional[CancellationToken] = None,
                                 decedent_name: Optional[str] = None) -> List[PropertyCandidate]:
        properties = []
        for link in self.find_property_links(soup, base_url, site):
            parcel_id = parcel_id_from_link(link['text'], link['url'])
            if not parcel_id:
                logger.warning(f"Skipping property link without parcel id: {link['url']}")
                continue
            fields = {}
            page = await browser.acquire_page()
            try:
                await retry(
                    lambda: page.goto(link['url']),
                    max_attempts=self.retry_attempts,
                    base_delay=self.retry_base_delay,
                    token=token,
                    retry_on=(NavigationFailure,),
                    description=f"Property page {link['url']}",
                )
                html = await page.content()
                fields = extract_fields(BeautifulSoup(html, 'html.parser'), site.property_fields)
                self.artifacts.save_html("parcel", parcel_id, html)
            except NavigationFailure as e:
                logger.warning(f"Could not load property page for parcel {parcel_id}: {e}")
            finally:
                await browser.release_page(page)
            parcel = property_from_fields(parcel_id, site.county, link['url'], fields)
            # A linked parcel with no readable owner is taken as belonging to the case
            if decedent_name and parcel.current_owner:
                parcel = parcel.model_copy(update={'match_confidence': name_score(decedent_name, parcel.current_owner)})
            properties.append(parcel)
        return properties
