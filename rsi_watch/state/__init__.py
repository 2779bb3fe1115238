"""
Position tracking module.

Tracks hypothetical positions opened by buy signals until their target price
is reached: absent -> OPEN -> TARGET_REACHED -> absent.
"""
