"""
Property Record Resolver — turns a street address into one canonical property record.

Architecture: Address variants → Ordered (variant × source × shape) attempts → Scoring → Field mapping
Philosophy:  Trust no source's shape. Read every field through ranked paths.
"""

__version__ = "1.0.0"
