"""Alternate glyph-name tables.

Names used by the Symbol and ZapfDingbats fonts that the Adobe Glyph List
either lacks or maps differently.  They are consulted only after the primary
glyph list has no entry for a name.
"""

from __future__ import annotations

__all__ = ["DINGBAT_GLYPHS", "SYMBOL_GLYPHS", "ALTERNATE_GLYPHS"]

SYMBOL_GLYPHS: dict[str, str] = {
    "Alpha": "Α", "Beta": "Β", "Chi": "Χ", "Delta": "Δ", "Epsilon": "Ε", "Eta": "Η",
    "Euro": "€", "Gamma": "Γ", "Ifraktur": "ℑ", "Iota": "Ι", "Kappa": "Κ", "Lambda": "Λ", "Mu": "Μ", "Nu": "Ν",
    "Omega": "Ω", "Omicron": "Ο", "Phi": "Φ", "Pi": "Π", "Psi": "Ψ", "Rfraktur": "ℜ", "Rho": "Ρ", "Sigma": "Σ",
    "Tau": "Τ", "Theta": "Θ", "Upsilon": "Υ", "Upsilon1": "ϒ", "Xi": "Ξ", "Zeta": "Ζ", "aleph": "ℵ", "alpha": "α",
    "ampersand": "&", "angle": "∠", "angleleft": "〈", "angleright": "〉", "apple": "", "approxequal": "≈",
    "arrowboth": "↔", "arrowdblboth": "⇔", "arrowdbldown": "⇓", "arrowdblleft": "⇐", "arrowdblright": "⇒",
    "arrowdblup": "⇑", "arrowdown": "↓", "arrowhorizex": "⎯", "arrowleft": "←", "arrowright": "→", "arrowup": "↑",
    "arrowvertex": "⏐", "asteriskmath": "∗", "bar": "|", "beta": "β", "braceex": "⎪", "braceleft": "{",
    "braceleftbt": "⎩", "braceleftmid": "⎨", "bracelefttp": "⎧", "braceright": "}", "bracerightbt": "⎭",
    "bracerightmid": "⎬", "bracerighttp": "⎫", "bracketleft": "[", "bracketleftbt": "⎣", "bracketleftex": "⎢",
    "bracketlefttp": "⎡", "bracketright": "]", "bracketrightbt": "⎦", "bracketrightex": "⎥", "bracketrighttp": "⎤",
    "bullet": "•", "carriagereturn": "↵", "chi": "χ", "circlemultiply": "⊗", "circleplus": "⊕", "club": "♣",
    "colon": ":", "comma": ",", "congruent": "≅", "copyrightsans": "©", "copyrightserif": "©", "degree": "°",
    "delta": "δ", "diamond": "♦", "divide": "÷", "dotmath": "⋅", "eight": "8", "element": "∈", "ellipsis": "…",
    "emptyset": "∅", "epsilon": "ε", "equal": "=", "equivalence": "≡", "eta": "η", "exclam": "!", "existential":
    "∃", "five": "5", "florin": "ƒ", "four": "4", "fraction": "⁄", "gamma": "γ", "gradient": "∇", "greater": ">",
    "greaterequal": "≥", "heart": "♥", "infinity": "∞", "integral": "∫", "integralbt": "⌡", "integralex": "⎮",
    "integraltp": "⌠", "intersection": "∩", "iota": "ι", "kappa": "κ", "lambda": "λ", "less": "<",
    "lessequal": "≤", "logicaland": "∧", "logicalnot": "¬", "logicalor": "∨", "lozenge": "◊", "minus": "−",
    "minute": "′", "mu": "μ", "multiply": "×", "nine": "9", "notelement": "∉", "notequal": "≠", "notsubset": "⊄",
    "nu": "ν", "numbersign": "#", "omega": "ω", "omega1": "ϖ", "omicron": "ο", "one": "1", "parenleft": "(",
    "parenleftbt": "⎝", "parenleftex": "⎜", "parenlefttp": "⎛", "parenright": ")", "parenrightbt": "⎠",
    "parenrightex": "⎟", "parenrighttp": "⎞", "partialdiff": "∂", "percent": "%", "period": ".",
    "perpendicular": "⊥", "phi": "ϕ", "phi1": "φ", "pi": "π", "plus": "+", "plusminus": "±", "product": "∏",
    "propersubset": "⊂", "propersuperset": "⊃", "proportional": "∝", "psi": "ψ", "question": "?", "radical": "√",
    "radicalex": "‾", "reflexsubset": "⊆", "reflexsuperset": "⊇", "registersans": "®", "registerserif": "®",
    "rho": "ρ", "second": "″", "semicolon": ";", "seven": "7", "sigma": "σ", "sigma1": "ς", "similar": "∼",
    "six": "6", "slash": "/", "space": " ", "spade": "♠", "suchthat": "∋", "summation": "∑", "tau": "τ",
    "therefore": "∴", "theta": "θ", "theta1": "ϑ", "three": "3", "trademarksans": "™", "trademarkserif": "™",
    "two": "2", "underscore": "_", "union": "∪", "universal": "∀", "upsilon": "υ", "weierstrass": "℘",
    "xi": "ξ", "zero": "0", "zeta": "ζ",
}

DINGBAT_GLYPHS: dict[str, str] = {
    "a1": "✁", "a2": "✂", "a202": "✃", "a3": "✄", "a4": "☎", "a5": "✆", "a119": "✇", "a118": "✈",
    "a117": "✉", "a11": "☛", "a12": "☞", "a13": "✌", "a14": "✍", "a15": "✎", "a16": "✏", "a105": "✐", "a17": "✑",
    "a18": "✒", "a19": "✓", "a20": "✔", "a21": "✕", "a22": "✖", "a23": "✗", "a24": "✘", "a25": "✙", "a26": "✚",
    "a27": "✛", "a28": "✜", "a6": "✝", "a7": "✞", "a8": "✟", "a9": "✠", "a10": "✡", "a29": "✢", "a30": "✣",
    "a31": "✤", "a32": "✥", "a33": "✦", "a34": "✧", "a35": "★", "a36": "✩", "a37": "✪", "a38": "✫", "a39": "✬",
    "a40": "✭", "a41": "✮", "a42": "✯", "a43": "✰", "a44": "✱", "a45": "✲", "a46": "✳", "a47": "✴", "a48": "✵",
    "a49": "✶", "a50": "✷", "a51": "✸", "a52": "✹", "a53": "✺", "a54": "✻", "a55": "✼", "a56": "✽", "a57": "✾",
    "a58": "✿", "a59": "❀", "a60": "❁", "a61": "❂", "a62": "❃", "a63": "❄", "a64": "❅", "a65": "❆", "a66": "❇",
    "a67": "❈", "a68": "❉", "a69": "❊", "a70": "❋", "a71": "●", "a72": "❍", "a73": "■", "a74": "❏", "a203": "❐",
    "a75": "❑", "a204": "❒", "a76": "▲", "a77": "▼", "a78": "◆", "a79": "❖", "a81": "◗", "a82": "❘", "a83": "❙",
    "a84": "❚", "a97": "❛", "a98": "❜", "a99": "❝", "a100": "❞", "a89": "❨", "a90": "❩", "a93": "❪", "a94": "❫",
    "a91": "❬", "a92": "❭", "a205": "❮", "a85": "❯", "a206": "❰", "a86": "❱", "a87": "❲", "a88": "❳", "a95": "❴",
    "a96": "❵", "a101": "❡", "a102": "❢", "a103": "❣", "a104": "❤", "a106": "❥", "a107": "❦", "a108": "❧",
    "a112": "♣", "a111": "♦", "a110": "♥", "a109": "♠", "a120": "①", "a121": "②", "a122": "③", "a123": "④",
    "a124": "⑤", "a125": "⑥", "a126": "⑦", "a127": "⑧", "a128": "⑨", "a129": "⑩", "a130": "❶", "a131": "❷",
    "a132": "❸", "a133": "❹", "a134": "❺", "a135": "❻", "a136": "❼", "a137": "❽", "a138": "❾", "a139": "❿",
    "a140": "➀", "a141": "➁", "a142": "➂", "a143": "➃", "a144": "➄", "a145": "➅", "a146": "➆", "a147": "➇",
    "a148": "➈", "a149": "➉", "a150": "➊", "a151": "➋", "a152": "➌", "a153": "➍", "a154": "➎", "a155": "➏",
    "a156": "➐", "a157": "➑", "a158": "➒", "a159": "➓", "a160": "➔", "a161": "→", "a163": "↔", "a164": "↕",
    "a196": "➘", "a165": "➙", "a192": "➚", "a166": "➛", "a167": "➜", "a168": "➝", "a169": "➞", "a170": "➟",
    "a171": "➠", "a172": "➡", "a173": "➢", "a162": "➣", "a174": "➤", "a175": "➥", "a176": "➦", "a177": "➧",
    "a178": "➨", "a179": "➩", "a193": "➪", "a180": "➫", "a199": "➬", "a181": "➭", "a200": "➮", "a182": "➯",
    "a201": "➱", "a183": "➲", "a184": "➳", "a197": "➴", "a185": "➵", "a194": "➶", "a198": "➷", "a186": "➸",
    "a195": "➹", "a187": "➺", "a188": "➻", "a189": "➼", "a190": "➽", "a191": "➾",
}

ALTERNATE_GLYPHS: dict[str, str] = {**SYMBOL_GLYPHS, **DINGBAT_GLYPHS}
