"""
IPA Builder — repackage zipped iOS .app bundles into installable .ipa archives.
"""

__version__ = "0.1.0"
