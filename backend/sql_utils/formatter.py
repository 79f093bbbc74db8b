"""Cosmetic SQL formatting for the editor and query history lists."""

import re
from typing import List

KEYWORDS = [
    'SELECT', 'FROM', 'WHERE', 'AND', 'OR', 'NOT', 'IN', 'LIKE', 'BETWEEN',
    'IS', 'NULL', 'AS', 'ORDER', 'BY', 'GROUP', 'HAVING', 'LIMIT', 'OFFSET',
    'ASC', 'DESC', 'LEFT', 'RIGHT', 'INNER', 'OUTER', 'CROSS', 'JOIN', 'ON',
    'SET', 'VALUES', 'INTO', 'INSERT', 'UPDATE', 'DELETE', 'CREATE', 'TABLE',
    'ALTER', 'DROP', 'INDEX', 'PRIMARY', 'KEY', 'FOREIGN', 'REFERENCES',
    'CONSTRAINT', 'DEFAULT', 'AUTO_INCREMENT', 'UNIQUE', 'ENGINE', 'CHARSET',
    'COLLATE', 'IF', 'EXISTS', 'CASE', 'WHEN', 'THEN', 'ELSE', 'END',
    'DISTINCT', 'ALL', 'COUNT', 'SUM', 'AVG', 'MIN', 'MAX', 'CONCAT',
    'COALESCE', 'IFNULL', 'NULLIF', 'NOW', 'CURRENT_TIMESTAMP', 'TRUE', 'FALSE',
    'UNION', 'EXCEPT', 'INTERSECT', 'USING', 'NATURAL', 'FULL',
]

# Clauses that start on a new line
MAIN_CLAUSES = ['SELECT', 'FROM', 'WHERE', 'GROUP BY', 'HAVING', 'ORDER BY', 'LIMIT', 'OFFSET', 'SET', 'VALUES']
JOIN_TYPES = [
    'LEFT OUTER JOIN', 'RIGHT OUTER JOIN', 'LEFT JOIN', 'RIGHT JOIN',
    'INNER JOIN', 'OUTER JOIN', 'CROSS JOIN', 'JOIN',
]
# Clauses whose body goes on its own indented line
INDENTED_CLAUSES = ['FROM', 'WHERE', 'ORDER BY', 'GROUP BY', 'LIMIT', 'SET']

INDENT = '    '


def _pattern(phrase: str) -> str:
    return phrase.replace(' ', r'\s+')


_LITERAL_RE = re.compile(r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|`[^`]*`""")
_PLACEHOLDER_RE = re.compile(r'\x00(\d+)\x00')
# Not after "." so qualified names like t.count keep their spelling
_KEYWORD_RE = re.compile(r'(?<!\.)(?<!\.\s)\b(' + '|'.join(KEYWORDS) + r')\b', re.IGNORECASE)
_JOIN_RE = re.compile(r'\s+(' + '|'.join(_pattern(j) for j in JOIN_TYPES) + r')\b')
_BETWEEN_AND_RE = re.compile(r'\bBETWEEN\s+(\S+)\s+AND\s+')
_BETWEEN_MARK = '\x01'


def format_sql(sql: str) -> str:
    """
    Pretty-print SQL: uppercase keywords, one clause per line, one
    select-list item per line. String literals and quoted identifiers are
    left exactly as written.
    """
    if not sql or not sql.strip():
        return ""

    literals: List[str] = []

    def protect(match: re.Match) -> str:
        literals.append(match.group(0))
        return f"\x00{len(literals) - 1}\x00"

    text = _LITERAL_RE.sub(protect, sql)
    text = re.sub(r'\s+', ' ', text).strip()
    text = _KEYWORD_RE.sub(lambda m: m.group(1).upper(), text)

    for clause in MAIN_CLAUSES:
        text = re.sub(rf'\s+{_pattern(clause)}\b', f'\n{clause}', text)
    text = _JOIN_RE.sub(lambda m: '\n' + ' '.join(m.group(1).split()), text)

    text = re.sub(r'^SELECT\s+', f'SELECT\n{INDENT}', text)
    text = re.sub(rf'^SELECT\n{INDENT}DISTINCT\s+', f'SELECT DISTINCT\n{INDENT}', text)
    for clause in INDENTED_CLAUSES:
        text = re.sub(rf'\n{_pattern(clause)}\s+', f'\n{clause}\n{INDENT}', text)

    # Commas outside parentheses
    text = re.sub(r',\s*(?![^(]*\))', f',\n{INDENT}', text)

    text = _BETWEEN_AND_RE.sub(lambda m: f"BETWEEN {m.group(1)} {_BETWEEN_MARK} ", text)
    text = re.sub(r'\s+(AND|OR)\s+', rf'\n{INDENT}\1 ', text)
    text = text.replace(_BETWEEN_MARK, 'AND')

    # ON stays on the JOIN line
    text = re.sub(r'\n\s*ON\s+', ' ON ', text)

    text = '\n'.join(line for line in text.split('\n') if line.strip())
    return _PLACEHOLDER_RE.sub(lambda m: literals[int(m.group(1))], text)


def truncate_sql(sql: str, max_length: int) -> str:
    """Collapse whitespace and cut to max_length characters, adding "..." when cut."""
    cleaned = re.sub(r'\s+', ' ', sql or '').strip()
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[:max_length] + '...'
