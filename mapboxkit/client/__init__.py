"""Namespace for web API access; it holds no modules."""