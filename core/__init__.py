"""core/ -- Configuration kernel shared by every other package.

Layer rule: core/ has no reverse dependencies on auth/ or kvstore/.
"""
