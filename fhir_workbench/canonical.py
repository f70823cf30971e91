from typing import Optional

from fhir_workbench.schemas import VersionedCanonicalUrl


def split_canonical(canonical_url: Optional[str]) -> Optional[VersionedCanonicalUrl]:
    """
    Split a canonical reference of the form `url|version#code`.

    The `#code` fragment is removed first, then the remainder is split on the
    first `|`. Nothing is percent-decoded.

    Returns:
        VersionedCanonicalUrl, or None for empty input.
    """
    if not canonical_url:
        return None

    code = None
    code_index = canonical_url.find('#')
    if code_index != -1:
        code = canonical_url[code_index + 1:]
        canonical_url = canonical_url[:code_index]

    url, sep, version = canonical_url.partition('|')
    if not sep:
        return VersionedCanonicalUrl(canonical_url=url, code=code)
    return VersionedCanonicalUrl(canonical_url=url, version=version, code=code)
