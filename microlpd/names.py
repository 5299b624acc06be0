# -*- coding: utf-8 -*-

"""Filename sanitizing. Every queue name and job file name arriving from the
peer passes through `sane` before it touches the filesystem."""


import string


SAFE_CHARACTERS = frozenset(string.ascii_letters + string.digits + '-_')


def sane(name):
    """Return `name` with every character other than an ASCII letter, digit,
    '-' or '_' removed. The caller must treat an empty result as invalid."""
    return ''.join(c for c in name if c in SAFE_CHARACTERS)
