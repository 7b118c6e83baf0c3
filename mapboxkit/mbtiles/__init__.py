"""Namespace for tile archive storage; it holds no modules."""