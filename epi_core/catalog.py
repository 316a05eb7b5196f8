"""
Static label catalog of the PPE detection model.
"""
from __future__ import annotations
from typing import Dict, Mapping

# Class ids as trained in the hosted model
EPI_CLASSES: Dict[int, str] = {
    0: "pessoa",
    1: "orelha",
    2: "protetores auriculares",
    3: "rosto",
    4: "protetor facial",
    5: "máscara facial",
    6: "pé",
    7: "ferramenta",
    8: "óculos",
    9: "luvas",
    10: "capacete",
    11: "mãos",
    12: "cabeça",
    13: "roupa médica",
    14: "sapatos",
    15: "roupa de segurança",
    16: "colete de segurança",
}

# Equipment that may be marked as required (body parts excluded)
AVAILABLE_EPIS: Dict[int, str] = {
    10: "capacete",
    8: "óculos",
    5: "máscara facial",
    9: "luvas",
    16: "colete de segurança",
    2: "protetores auriculares",
    4: "protetor facial",
    13: "roupa médica",
    15: "roupa de segurança",
    14: "sapatos",
}

DEFAULT_REQUIRED = ["capacete", "óculos", "máscara facial"]


def label_for(class_id: int, catalog: Mapping[int, str] = EPI_CLASSES) -> str:
    return catalog.get(class_id, f"Classe {class_id}")
