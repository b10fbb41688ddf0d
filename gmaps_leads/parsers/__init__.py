"""
Parsers module for turning model output into business data.

- json_text.py: Locate and decode JSON arrays embedded in free text
- business.py: Normalise raw candidates and derive identity keys
"""

from .json_text import extract_first_json_array, iter_json_arrays, parse_array_payload
from .business import identity_key, normalize_business, candidate_name
