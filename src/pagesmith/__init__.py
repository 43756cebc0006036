"""pagesmith: site context acquisition, page assembly and publishing."""

__version__ = "0.1.0"
