"""Security checks bundled with the scanner"""
