"""Name/address similarity and case-to-parcel matching.

Scores are in [0, 1]. A candidate is kept when its score is strictly above
the threshold for the path it was found through; contact-address matches are
discounted before the threshold is applied.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.errors import CrawlCancelled
from probate_monitor.schemas.scraped_case import PropertyCandidate, ScrapedCase, merge_candidates
from probate_monitor.utils.text import DIRECTIONALS, STATE_CODES, STREET_TYPES

GENERATIONAL_SUFFIXES = {'JR', 'SR', 'II', 'III', 'IV'}
ZIP_PATTERN = re.compile(r'^\d{5}$')

_STREET_CANONICAL = {full: abbr for abbr, full in STREET_TYPES.items()}
_STREET_CANONICAL.update({full: abbr for abbr, full in DIRECTIONALS.items()})


def normalize_name(name: Optional[str]) -> str:
    text = (name or "").upper()
    text = re.sub(r'[,/\-]', ' ', text)
    text = re.sub(r'[^A-Z\s]', '', text)
    return " ".join(token for token in text.split() if token not in GENERATIONAL_SUFFIXES)


def _token_overlap(shorter: List[str], longer: List[str]) -> float:
    total = 0.0
    for token in shorter:
        if token in longer:
            total += 1.0
        elif len(token) > 3 and any(len(other) > 3 and (token in other or other in token) for other in longer):
            total += 0.8
    return total


def name_score(a: Optional[str], b: Optional[str]) -> float:
    """Token-overlap similarity of two person names"""
    norm_a, norm_b = normalize_name(a), normalize_name(b)
    if not norm_a and not norm_b:
        # Nothing left after normalization (e.g. "Jr."); only identical raw text counts
        raw_a, raw_b = (a or "").strip().upper(), (b or "").strip().upper()
        return 1.0 if raw_a and raw_a == raw_b else 0.0
    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0

    tokens_a, tokens_b = norm_a.split(), norm_b.split()
    if len(tokens_a) < len(tokens_b):
        total = _token_overlap(tokens_a, tokens_b)
    elif len(tokens_b) < len(tokens_a):
        total = _token_overlap(tokens_b, tokens_a)
    else:
        total = max(_token_overlap(tokens_a, tokens_b), _token_overlap(tokens_b, tokens_a))
    return min(1.0, total / max(len(tokens_a), len(tokens_b)))


def normalize_address(address: Optional[str]) -> str:
    text = re.sub(r'[^A-Z0-9\s]', ' ', (address or "").upper())
    return " ".join(text.split())


def address_components(normalized: str) -> Tuple[Optional[str], str, Optional[str]]:
    """Split a normalized address into (house number, street, zip)"""
    tokens = normalized.split()
    if not tokens:
        return None, "", None
    house = tokens[0] if tokens[0].isdigit() else None
    street = []
    for index in range(1 if house else 0, len(tokens)):
        token = tokens[index]
        if ZIP_PATTERN.match(token):
            break
        if token in STATE_CODES and (index == len(tokens) - 1 or ZIP_PATTERN.match(tokens[index + 1])):
            break
        canonical = _STREET_CANONICAL.get(token, token)
        street.append(canonical)
        if canonical in STREET_TYPES and index > (1 if house else 0):
            # City names follow the street type
            break
    zip_code = None
    for index in range(len(tokens) - 1, 0, -1):
        if ZIP_PATTERN.match(tokens[index]):
            zip_code = tokens[index]
            break
    return house, " ".join(street), zip_code


def address_score(a: Optional[str], b: Optional[str]) -> float:
    """Weighted component similarity of two postal addresses"""
    norm_a, norm_b = normalize_address(a), normalize_address(b)
    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0

    house_a, street_a, zip_a = address_components(norm_a)
    house_b, street_b, zip_b = address_components(norm_b)
    score = 0.0
    if house_a and house_a == house_b:
        score += 0.4
    if street_a and street_a == street_b:
        score += 0.4
    elif street_a and street_b and (street_a in street_b or street_b in street_a):
        score += 0.3
    if zip_a and zip_a == zip_b:
        score += 0.2
    return min(1.0, score)


def _best_address_score(address: Optional[str], candidate: PropertyCandidate) -> float:
    return max(
        address_score(address, candidate.situs_address),
        address_score(address, candidate.tax_mailing_address),
    )


@dataclass
class CandidatePool:
    """Property candidates grouped by the search that found them"""
    by_name: List[PropertyCandidate] = field(default_factory=list)
    by_decedent_address: List[PropertyCandidate] = field(default_factory=list)
    by_contact_address: List[PropertyCandidate] = field(default_factory=list)


class MatchingEngine:
    def __init__(
        self,
        name_threshold: float = None,
        address_threshold: float = None,
        contact_threshold: float = None,
        contact_discount: float = None,
    ):
        self.name_threshold = settings.MATCH_NAME_THRESHOLD if name_threshold is None else name_threshold
        self.address_threshold = settings.MATCH_ADDRESS_THRESHOLD if address_threshold is None else address_threshold
        self.contact_threshold = settings.MATCH_CONTACT_THRESHOLD if contact_threshold is None else contact_threshold
        self.contact_discount = settings.MATCH_CONTACT_DISCOUNT if contact_discount is None else contact_discount

    def match_properties(self, case: ScrapedCase, pool: CandidatePool) -> List[PropertyCandidate]:
        """Score every candidate in the pool; return accepted ones, one per parcel, best first"""
        accepted = []

        for candidate in pool.by_name:
            score = name_score(case.decedent_name, candidate.current_owner)
            if score > self.name_threshold:
                accepted.append(candidate.model_copy(update={'match_confidence': score}))

        if case.decedent_address:
            for candidate in pool.by_decedent_address:
                score = _best_address_score(case.decedent_address, candidate)
                if score > self.address_threshold:
                    accepted.append(candidate.model_copy(update={'match_confidence': score}))

        contact_addresses = [contact.address for contact in case.contacts if contact.address]
        for candidate in pool.by_contact_address:
            if not contact_addresses:
                break
            score = max(_best_address_score(address, candidate) for address in contact_addresses) * self.contact_discount
            if score > self.contact_threshold:
                accepted.append(candidate.model_copy(update={'match_confidence': score}))

        matches = merge_candidates(accepted)
        logger.info(f"Matched {len(matches)} parcels for case {case.case_id}")
        return matches

    async def gather_candidates(self, case: ScrapedCase, search) -> CandidatePool:
        """Query the property search by decedent name, decedent address and contact addresses"""
        pool = CandidatePool()
        try:
            pool.by_name = await search.search_by_owner(case.decedent_name, case.county)
        except CrawlCancelled:
            raise
        except Exception as e:
            logger.warning(f"Owner search failed for {case.case_id}: {e}")
        if case.decedent_address:
            try:
                pool.by_decedent_address = await search.search_by_address(case.decedent_address, case.county)
            except CrawlCancelled:
                raise
            except Exception as e:
                logger.warning(f"Address search failed for {case.case_id}: {e}")
        for contact in case.contacts:
            if not contact.address:
                continue
            try:
                pool.by_contact_address.extend(await search.search_by_address(contact.address, case.county))
            except CrawlCancelled:
                raise
            except Exception as e:
                logger.warning(f"Contact address search failed for {case.case_id}: {e}")
        return pool

    async def find_matching_properties(self, case: ScrapedCase, search) -> List[PropertyCandidate]:
        pool = await self.gather_candidates(case, search)
        return self.match_properties(case, pool)
