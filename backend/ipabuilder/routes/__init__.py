"""HTTP routers for the IPA Builder service."""
