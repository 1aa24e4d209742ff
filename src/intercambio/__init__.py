"""
intercambio: motor de matching para intercambio de idiomas.
"""

__version__ = "0.1.0"
