"""Site definitions for the crawl.

Everything that differs between source sites (URLs, selector cascades, result
columns, field strategies) lives here as data so new sites and markup variants
are added without touching the crawler.

Two selector dialects are used: form interaction selectors are Playwright
selectors (``:has-text``, ``text=``), while result-grid, row and field
selectors run against captured HTML through BeautifulSoup/soupsieve
(``:-soup-contains``).
"""
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from probate_monitor.core.errors import UnsupportedSiteError
from probate_monitor.schemas.scraped_case import SourceKind

class FieldStrategy(BaseModel):
    kind: Literal["css", "label"]
    value: str

def css(value: str) -> FieldStrategy:
    return FieldStrategy(kind="css", value=value)

def label(value: str) -> FieldStrategy:
    return FieldStrategy(kind="label", value=value)

DEFAULT_DETAIL_FIELDS: Dict[str, List[FieldStrategy]] = {
    "petitioner": [label("Petitioner"), css(".petitioner-name"), css('[class*="petitioner"]')],
    "executor": [label("Executor"), label("Personal Representative"), css(".executor-name")],
    "administrator": [label("Administrator"), css(".administrator-name"), css('[class*="administrator"]')],
    "decedent_address": [label("Decedent Address"), label("Address of Decedent"), label("Last Known Address")],
    "filing_date": [label("Filed Date"), label("Date Filed"), label("Filing Date")],
    "attorney": [label("Attorney"), css(".attorney-name")],
    "estate_value": [label("Estate Value"), label("Value of Estate")],
}

DEFAULT_PROPERTY_FIELDS: Dict[str, List[FieldStrategy]] = {
    "situs_address": [
        label("Situs Address"), label("Property Address"), css(".situs-address"),
        css('[class*="situs"]'), css('[id*="address"]'),
    ],
    "tax_mailing_address": [
        label("Tax Mailing"), label("Mailing Address"), css(".tax-mailing"),
        css('[class*="mailing"]'), css('[id*="mailing"]'),
    ],
    "current_owner": [
        label("Current Owner"), label("Owner"), css(".owner-name"),
        css('[class*="owner"]'), css('[id*="owner"]'),
    ],
    "last_sale_date": [label("Sale Date"), label("Last Sale")],
    "assessed_value": [label("Assessed Value"), label("Total Value")],
    "legal_description": [label("Legal Description"), css("textarea")],
}

DEFAULT_BLOCKER_SELECTORS = [
    'img[src*="captcha"]',
    'iframe[src*="recaptcha"]',
    '.g-recaptcha',
    '[class*="captcha"]',
    'text=/access denied/i',
    'text=/rate limited/i',
]

DEFAULT_PROPERTY_LINK_SELECTORS = [
    'a[href*="qpublic"]',
    'a[href*="parcel"]',
    'a:-soup-contains("Property")',
]

class SiteConfig(BaseModel):
    key: str
    name: str
    source_kind: SourceKind
    county: str
    search_url: str
    case_id_prefix: str
    ready_selector: Optional[str] = None
    consent_selectors: List[str] = Field(default_factory=list)
    jurisdiction_dropdown: Optional[str] = None
    jurisdiction_option_templates: List[str] = Field(default_factory=list)
    priority_jurisdictions: List[str] = Field(default_factory=list)
    date_format: str = "%m/%d/%Y"
    date_start_selectors: List[str] = Field(default_factory=list)
    date_end_selectors: List[str] = Field(default_factory=list)
    search_input_selectors: List[str] = Field(default_factory=list)
    search_terms: List[str] = Field(default_factory=list)
    submit_selectors: List[str] = Field(default_factory=list)
    results_ready_selector: Optional[str] = None
    blocker_selectors: List[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKER_SELECTORS))
    grid_selectors: List[str] = Field(default_factory=list)
    row_selectors: List[str] = Field(default_factory=lambda: ["tr:has(td)"])
    row_text_filter: List[str] = Field(default_factory=list)
    next_page_selectors: List[str] = Field(default_factory=list)
    # Result column index per field
    columns: Dict[str, int] = Field(default_factory=dict)
    detail_fields: Dict[str, List[FieldStrategy]] = Field(default_factory=lambda: dict(DEFAULT_DETAIL_FIELDS))
    property_fields: Dict[str, List[FieldStrategy]] = Field(default_factory=lambda: dict(DEFAULT_PROPERTY_FIELDS))
    property_link_selectors: List[str] = Field(default_factory=lambda: list(DEFAULT_PROPERTY_LINK_SELECTORS))

SUBMIT_SELECTORS = [
    'input[type="submit"]',
    'button[type="submit"]',
    '.search-button',
    '[value*="Search"]',
    'button:has-text("Search")',
]

QPUBLIC_URLS = {
    'cobb': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=1051&LayerID=23951&PageTypeID=2&PageID=9967',
    'dekalb': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=994&LayerID=20256&PageTypeID=2&PageID=8822',
    'fulton': 'https://qpublic.schneidercorp.com/Application.aspx?App=FultonCountyGA&Layer=Parcels&PageType=Search',
    'fayette': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=942&LayerID=18406&PageTypeID=2&PageID=8204',
    'newton': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=794&LayerID=11825&PageID=5724',
    'douglas': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=988&LayerID=20162&PageID=8760',
    'gwinnett': 'https://qpublic.schneidercorp.com/Application.aspx?AppID=1282&LayerID=43872&PageID=16058',
}

def _qpublic_site(county: str, url: str) -> SiteConfig:
    return SiteConfig(
        key=f"qpublic_{county}",
        name=f"QPublic {county.title()}",
        source_kind="property",
        county=county,
        search_url=url,
        case_id_prefix=f"QPUB-{county.upper()}",
        search_input_selectors=['input[name*="owner"]', 'input[name*="search"]', 'input[type="text"]'],
        search_terms=['estate', 'deceased', 'probate'],
        submit_selectors=['input[type="submit"]', 'button[type="submit"]', '[value*="Search"]', '.search-btn'],
        grid_selectors=['table:has(tr td)', '.search-results'],
        row_selectors=['.property-result', '.result-row', 'tr:has(td)'],
        row_text_filter=['estate', 'deceased'],
        # parcel id, situs address, owner, last sale date
        columns={"case_number": 0, "address": 1, "decedent_name": 2, "filing_date": 3},
    )

SITE_REGISTRY: Dict[str, SiteConfig] = {
    "georgia_probate_records": SiteConfig(
        key="georgia_probate_records",
        name="Georgia Probate Records",
        source_kind="court",
        county="georgia",
        search_url="https://georgiaprobaterecords.com/Estates/SearchEstates.aspx",
        case_id_prefix="GPR",
        ready_selector="#ctl00_cpMain_ddlCounty",
        consent_selectors=[
            'button:has-text("Accept")',
            'button:has-text("I Agree")',
            '.btn-primary:has-text("Accept")',
            '[class*="accept"]',
            '[class*="agree"]',
        ],
        jurisdiction_dropdown="#ctl00_cpMain_ddlCounty",
        jurisdiction_option_templates=[
            'li:has-text("{name}")',
            '.rddlItem:has-text("{name}")',
            'li.rddlItem:has-text("{name}")',
        ],
        priority_jurisdictions=["Henry", "Clayton", "Douglas"],
        date_start_selectors=[
            'input[id="ctl00_cpMain_txtFiledStartDate_dateInput"]',
            'input[id*="txtFiledStartDate_dateInput"]',
        ],
        date_end_selectors=[
            'input[id="ctl00_cpMain_txtFiledEndDate_dateInput"]',
            'input[id*="txtFiledEndDate_dateInput"]',
        ],
        submit_selectors=[
            'input[id="ctl00_cpMain_btnSearch_input"]',
            'input[value="Search"]',
            'span[id="ctl00_cpMain_btnSearch"]',
            '#ctl00_cpMain_btnSearch',
            'input[type="submit"]',
            'button:has-text("Search")',
        ],
        results_ready_selector='#ctl00_cpMain_rgEstates table tbody tr, [id*="rgEstates"] tbody tr',
        grid_selectors=[
            '#ctl00_cpMain_rgEstates table',
            '[id*="rgEstates"] table',
            'table.rgMasterTable',
            '.RadGrid table',
            'table:has(th:-soup-contains("CASE"))',
            'table:has(th:-soup-contains("DECEDENT"))',
        ],
        row_selectors=['tbody tr.rgRow, tbody tr.rgAltRow', 'tbody tr[class*="rgRow"]', 'tr:has(td a)'],
        next_page_selectors=['.rgPageNext', 'input[title="Next Page"]'],
        columns={"case_number": 0, "decedent_name": 1, "filing_date": 2},
    ),
    "cobb_probate": SiteConfig(
        key="cobb_probate",
        name="Cobb County Probate Court",
        source_kind="court",
        county="cobb",
        search_url="https://probateonline.cobbcounty.org/BenchmarkWeb/Home.aspx/Search",
        case_id_prefix="COBB",
        ready_selector='input[type="submit"], button[type="submit"], .search-button',
        date_start_selectors=['input[name*="From"]', 'input[id*="From"]', 'input[type="date"]'],
        date_end_selectors=['input[name*="To"]', 'input[id*="To"]'],
        submit_selectors=SUBMIT_SELECTORS,
        grid_selectors=['table:has(tr td)'],
        row_selectors=['.result-row', 'tr:has(td)'],
        row_text_filter=['probate'],
        columns={"case_number": 0, "decedent_name": 1, "filing_date": 2},
    ),
}

for _county, _url in QPUBLIC_URLS.items():
    SITE_REGISTRY[f"qpublic_{_county}"] = _qpublic_site(_county, _url)

SITE_GROUPS: Dict[str, List[str]] = {
    "qpublic_all": [f"qpublic_{county}" for county in QPUBLIC_URLS],
}

def resolve_sites(keys: List[str]) -> List[SiteConfig]:
    """Expand group keys and look up every site; unknown keys raise before any crawling"""
    resolved = []
    for key in keys:
        for site_key in SITE_GROUPS.get(key, [key]):
            site = SITE_REGISTRY.get(site_key)
            if site is None:
                raise UnsupportedSiteError(site_key)
            if site not in resolved:
                resolved.append(site)
    return resolved
