import csv
import io
from typing import List

from probate_monitor.models.probate_case import ProbateCase

CSV_HEADERS = [
    'case_id', 'county', 'filing_date', 'decedent_name', 'decedent_address', 'estate_value',
    'contact_type', 'contact_name', 'contact_original_address', 'contact_standardized_address',
    'contact_deliverable', 'contact_phone', 'contact_phone_source',
    'parcel_id', 'parcel_county', 'parcel_situs_address', 'parcel_tax_mailing_address',
    'parcel_current_owner', 'parcel_last_sale_date', 'parcel_assessed_value', 'parcel_match_confidence',
    'qpublic_url',
]


def _text(value) -> str:
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


def case_to_dict(case: ProbateCase) -> dict:
    """Nested export shape: case, decedent, contacts and parcels"""
    return {
        'case_id': case.case_id,
        'county': case.county,
        'filing_date': _text(case.filing_date) or None,
        'decedent': {'name': case.decedent_name, 'address': case.decedent_address or ''},
        'estate_value': case.estate_value,
        'contacts': [
            {
                'type': contact.type,
                'name': contact.name,
                'original_address': contact.original_address or '',
                'standardized_address': contact.standardized_address or '',
                'deliverable': contact.deliverable,
                'phone': contact.phone,
                'phone_source': contact.phone_source,
            }
            for contact in case.contacts
        ],
        'parcels': [
            {
                'parcel_id': parcel.parcel_id,
                'county': parcel.county,
                'situs_address': parcel.situs_address or '',
                'tax_mailing_address': parcel.tax_mailing_address or '',
                'current_owner': parcel.current_owner or '',
                'last_sale_date': _text(parcel.last_sale_date) or None,
                'assessed_value': parcel.assessed_value,
                'match_confidence': parcel.match_confidence,
                'qpublic_url': parcel.qpublic_url or '',
            }
            for parcel in case.parcels
        ],
    }


def cases_to_csv(cases: List[ProbateCase]) -> str:
    """One row per contact/parcel pair position; cases without either still get one row"""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for case in cases:
        contacts = list(case.contacts)
        parcels = sorted(case.parcels, key=lambda p: p.match_confidence, reverse=True)
        for index in range(max(len(contacts), len(parcels), 1)):
            contact = contacts[index] if index < len(contacts) else None
            parcel = parcels[index] if index < len(parcels) else None
            writer.writerow([
                case.case_id,
                case.county,
                _text(case.filing_date),
                case.decedent_name,
                _text(case.decedent_address),
                _text(case.estate_value),
                _text(contact.type if contact else None),
                _text(contact.name if contact else None),
                _text(contact.original_address if contact else None),
                _text(contact.standardized_address if contact else None),
                _text(contact.deliverable if contact else None),
                _text(contact.phone if contact else None),
                _text(contact.phone_source if contact else None),
                _text(parcel.parcel_id if parcel else None),
                _text(parcel.county if parcel else None),
                _text(parcel.situs_address if parcel else None),
                _text(parcel.tax_mailing_address if parcel else None),
                _text(parcel.current_owner if parcel else None),
                _text(parcel.last_sale_date if parcel else None),
                _text(parcel.assessed_value if parcel else None),
                _text(parcel.match_confidence if parcel else None),
                _text(parcel.qpublic_url if parcel else None),
            ])
    return output.getvalue()
