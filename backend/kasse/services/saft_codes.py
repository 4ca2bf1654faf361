# Overview: Account, VAT and SAF-T PredefinedBasicID classification rules shared by exports and reports.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from flask import current_app

"""
Classification rules (authoritative)

- Ledger accounts: cash -> 1920, card -> 1921, anything else -> 1922.
  Revenue postings go to 3000, tips to 3001.
- VAT is a flat policy: one tax code, one rate, amounts treated as
  VAT-inclusive. Per-product rates are NOT consulted here.
- All amounts are integer øre.
"""

CASH_ACCOUNT_ID = "1920"
CARD_ACCOUNT_ID = "1921"
OTHER_PAYMENT_ACCOUNT_ID = "1922"
REVENUE_ACCOUNT_ID = "3000"
TIPS_ACCOUNT_ID = "3001"

TIP_RAISE_CODE = "10001"  # PredefinedBasicID-10
DEFAULT_TRANSACTION_CODE = "11001"  # Kontantsalg

_PAYMENT_ACCOUNTS = {
    "cash": CASH_ACCOUNT_ID,
    "card": CARD_ACCOUNT_ID,
}


def account_id_for_payment_method(payment_method: Optional[str]) -> str:
    return _PAYMENT_ACCOUNTS.get(payment_method, OTHER_PAYMENT_ACCOUNT_ID)


@dataclass(frozen=True)
class TaxPolicy:
    """
    Flat VAT policy.

    rate is a fraction (Decimal("0.25") for 25%). Amounts handed to the policy
    are gross (VAT-inclusive).
    """
    rate: Decimal = Decimal("0.25")
    code: str = "1"

    @classmethod
    def from_config(cls, config=None) -> "TaxPolicy":
        config = config if config is not None else current_app.config
        return cls(
            rate=Decimal(str(config.get("SAFT_VAT_RATE", "0.25"))),
            code=str(config.get("SAFT_TAX_CODE", "1")),
        )

    @property
    def percentage(self) -> str:
        return str((self.rate * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    def tax_amount(self, gross_amount: int) -> int:
        """VAT contained in a gross amount, rounded half away from zero."""
        value = Decimal(gross_amount) * self.rate / (1 + self.rate)
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def net_amount(self, gross_amount: int) -> int:
        value = Decimal(gross_amount) / (1 + self.rate)
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# =============================================================================
# PredefinedBasicID-12 (payment codes)
# =============================================================================

PAYMENT_CODES = {
    "12001": "Kontant",
    "12002": "Bankkort (debet)",
    "12003": "Kredittkort",
    "12004": "Bankkonto",
    "12005": "Gavekort",
    "12006": "Kundekonto",
    "12007": "Lojalitetspoeng",
    "12008": "Pant",
    "12009": "Sjekk",
    "12010": "Tilgodelapp",
    "12011": "Mobiltelefon løsninger",
    "12999": "Øvrige",
}

_PROVIDER_PAYMENT_CODES = {
    "card_present": "12002",
    "card": "12002",
    "us_bank_account": "12004",
    "sepa_debit": "12004",
    "link": "12011",
}

_METHOD_PAYMENT_CODES = {
    "cash": "12001",
    "card": "12002",
    "card_present": "12002",
    "credit_card": "12003",
    "bank_account": "12004",
    "gift_token": "12005",
    "customer_card": "12006",
    "loyalty": "12007",
    "bottle_deposit": "12008",
    "check": "12009",
    "credit_note": "12010",
    "mobile": "12011",
    "vipps": "12011",
}


def payment_code_for(payment_method: Optional[str], provider_method: Optional[str] = None) -> str:
    if provider_method and provider_method in _PROVIDER_PAYMENT_CODES:
        return _PROVIDER_PAYMENT_CODES[provider_method]
    return _METHOD_PAYMENT_CODES.get(payment_method, "12999")


# =============================================================================
# PredefinedBasicID-13 (payment event codes)
# =============================================================================

_PROVIDER_EVENT_CODES = {
    "card_present": "13017",
    "card": "13017",
    "us_bank_account": "13019",
    "sepa_debit": "13019",
    "link": "13018",
}

_METHOD_EVENT_CODES = {
    "cash": "13016",
    "card": "13017",
    "card_present": "13017",
    "credit_card": "13017",
    "mobile": "13018",
    "vipps": "13018",
}


def payment_event_code_for(payment_method: Optional[str], provider_method: Optional[str] = None) -> str:
    if provider_method and provider_method in _PROVIDER_EVENT_CODES:
        return _PROVIDER_EVENT_CODES[provider_method]
    return _METHOD_EVENT_CODES.get(payment_method, "13019")


EVENT_LABELS_NO = {
    "13001": "POS-applikasjon startet",
    "13002": "POS-applikasjon avsluttet",
    "13003": "Ansatt innlogging",
    "13004": "Ansatt utlogging",
    "13005": "Kontantskuff åpnet",
    "13006": "Kontantskuff lukket",
    "13008": "X-rapport (mellomrapport)",
    "13009": "Z-rapport (sluttrapport)",
    "13012": "Salgskvittering",
    "13013": "Returkvittering",
    "13014": "Annullert transaksjon",
    "13015": "Korreksjonskvittering",
    "13016": "Kontantbetaling",
    "13017": "Kortbetaling",
    "13018": "Mobilbetaling",
    "13019": "Annen betalingsmetode",
    "13020": "Økt åpnet",
    "13021": "Økt stengt",
}


def event_label_no(event_code: str, fallback: str = "N/A") -> str:
    return EVENT_LABELS_NO.get(event_code, fallback)


# =============================================================================
# PredefinedBasicID-11 (transaction codes)
# =============================================================================

TRANSACTION_CODES = {
    "11001": "Kontantsalg",
    "11002": "Kredittsalg",
    "11003": "Kjøp av varer",
    "11004": "Betaling",
    "11005": "Innbetaling fra kunde",
    "11006": "Utbetaling ved retur",
    "11007": "Inngående vekselbeholdning",
    "11008": "Kassedifferanse",
    "11009": "Korrigere kvittering",
    "11010": "Utbetaling (ansatte tar ut)",
    "11011": "Innbetaling (ansatte setter inn)",
    "11012": "Kjøp fra kunde + salg",
    "11013": "Vare i retur",
    "11014": "Inventar, lager",
    "11015": "Kontant- og kredittsalg",
    "11016": "Kontantsalg og retur",
    "11017": "Kredittsalg og retur",
    "11999": "Øvrige",
}


def transaction_code_for_charge(charge) -> str:
    if charge.refunded or (charge.amount_refunded or 0) > 0:
        return "11006"
    if charge.payment_method == "cash":
        return "11001"
    return "11002"


def transaction_code_for_payment(payment_method: str) -> str:
    return "11001" if payment_method == "cash" else "11002"


# =============================================================================
# PredefinedBasicID-04 (article groups)
# =============================================================================

ARTICLE_GROUP_CODES = {
    "04001": "Uttak av behandlingstjenester",
    "04002": "Uttak av behandlingsvarer",
    "04003": "Varesalg",
    "04004": "Salg av behandlingstjenester",
    "04005": "Salg av hårklipp",
    "04006": "Mat",
    "04007": "Øl",
    "04008": "Vin",
    "04009": "Brennevin",
    "04010": "Rusbrus/Cider",
    "04011": "Mineralvann (brus)",
    "04012": "Annen drikke (te, kaffe etc)",
    "04013": "Tobakk",
    "04014": "Andre varer",
    "04015": "Inngangspenger",
    "04016": "Inngangspenger fri adgang",
    "04017": "Garderobeavgift",
    "04018": "Garderobeavgift fri garderobe",
    "04019": "Helfullpensjon",
    "04020": "Halvpensjon",
    "04021": "Overnatting med frokost",
    "04999": "Øvrige",
}

# Norwegian rates: reduced 15% for food and food service, 0% for withdrawals
_REDUCED_RATE_GROUPS = {"04006", "04012", "04019", "04020", "04021"}
_ZERO_RATE_GROUPS = {"04001", "04002"}


def vat_percent_for_article_group(article_group_code: Optional[str]) -> Optional[Decimal]:
    if not article_group_code or article_group_code not in ARTICLE_GROUP_CODES:
        return None
    if article_group_code in _ZERO_RATE_GROUPS:
        return Decimal("0.00")
    if article_group_code in _REDUCED_RATE_GROUPS:
        return Decimal("15.00")
    return Decimal("25.00")


def article_group_code_for(
    product_type: Optional[str] = None,
    explicit_code: Optional[str] = None,
    override: Optional[str] = None,
) -> str:
    if override:
        return override
    if explicit_code:
        return explicit_code
    if product_type == "service":
        return "04004"
    if product_type == "good":
        return "04003"
    return "04999"
