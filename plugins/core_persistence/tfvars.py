# plugins/core_persistence/tfvars.py
"""
`.tfvars` 风格的扁平变量编解码。

每行一个赋值：

    name = "value"

值中的反斜杠、双引号和换行分别转义为 `\\\\`、`\\"` 和 `\\n`。
解码是宽松的：空行、`#` 注释、以及没有 `=` 的行都会被静默跳过；
重复的键以最后一行为准。键按大小写不敏感处理。
"""

from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

# 解码时识别的转义序列；其他反斜杠序列原样保留
_UNESCAPES = {'"': '"', '\\': '\\', 'n': '\n'}


class CaseInsensitiveDict(MutableMapping):
    """
    键大小写不敏感、保持插入顺序的字典。
    覆盖已有键时只替换值，保留第一次写入时的键名大小写。
    """

    def __init__(self, data: Optional[Mapping[str, str]] = None, **kwargs: str):
        self._store: Dict[str, Tuple[str, str]] = {}
        if data is not None:
            self.update(data)
        self.update(kwargs)

    def __setitem__(self, key: str, value: str) -> None:
        folded = key.lower()
        existing = self._store.get(folded)
        stored_key = existing[0] if existing is not None else key
        self._store[folded] = (stored_key, value)

    def __getitem__(self, key: str) -> str:
        return self._store[key.lower()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return (stored_key for stored_key, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        other = CaseInsensitiveDict(other)
        return dict(self.lower_items()) == dict(other.lower_items())

    def lower_items(self) -> Iterator[Tuple[str, str]]:
        return ((folded, kv[1]) for folded, kv in self._store.items())

    def copy(self) -> "CaseInsensitiveDict":
        return CaseInsensitiveDict(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"


def escape_value(value: str) -> str:
    # 顺序重要：先转义反斜杠，否则会把后面引入的反斜杠再转义一次
    return value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')


def unescape_value(raw: str) -> str:
    """
    escape_value 的逆操作。
    单次从左到右扫描，`\\\\n` 会还原为反斜杠加字母 n，而不是换行。
    """
    if '\\' not in raw:
        return raw

    out = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == '\\' and i + 1 < len(raw) and raw[i + 1] in _UNESCAPES:
            out.append(_UNESCAPES[raw[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return ''.join(out)


def loads(text: str) -> CaseInsensitiveDict:
    """把 tfvars 文本解码为大小写不敏感的映射。"""
    result = CaseInsensitiveDict()

    for line in text.split('\n'):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith('#'):
            continue

        key, sep, raw = trimmed.partition('=')
        if not sep:
            continue

        key = key.strip()
        raw = raw.strip()

        if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
            raw = raw[1:-1]

        result[key] = unescape_value(raw)

    return result


def dumps(variables: Mapping[str, str]) -> str:
    """
    按映射自身的顺序编码为 tfvars 文本，以单个换行结尾。
    调用方负责在编码前移除值为空字符串的键。
    """
    lines = [f'{key} = "{escape_value(value)}"' for key, value in variables.items()]
    return '\n'.join(lines) + '\n'
