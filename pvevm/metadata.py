"""
Static capability descriptor served on the meta-data action.
"""

from importlib import resources


def load_metadata() -> str:
    return resources.files("pvevm.resources").joinpath("metadata.xml").read_text(encoding="utf-8")
