"""CredVerify - Certificate Verification Backend"""
__version__ = "1.0.0"
