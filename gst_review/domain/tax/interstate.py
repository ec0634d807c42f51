from typing import Optional

def _clean_code(code: Optional[str]) -> str:
    if code is None:
        return ""
    return str(code).strip()

def is_inter_state(seller_state_code: Optional[str], buyer_state_code: Optional[str]) -> bool:
    """
    Inter-state supply iff both state codes are present, non-empty and different.

    POLICY: a missing/empty code on either side is treated as intra-state
    (CGST+SGST) until both parties' states are known. This is a provisional
    business default, not a rule of GST law; do not rely on it for filing.
    """
    seller = _clean_code(seller_state_code)
    buyer = _clean_code(buyer_state_code)
    if not seller or not buyer:
        return False
    return seller != buyer

def missing_state_codes(seller_state_code: Optional[str], buyer_state_code: Optional[str]) -> list:
    """
    Names of the state code fields the intra-state default is covering for.
    """
    missing = []
    if not _clean_code(seller_state_code):
        missing.append("seller_state_code")
    if not _clean_code(buyer_state_code):
        missing.append("buyer_state_code")
    return missing
