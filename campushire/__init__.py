"""CampusHire campus recruitment platform"""

__version__ = "1.0.0"
