"""
Video project domain logic: creation, scene editing, history, quality gate
and render tracking. Functions here mutate VideoProject objects in place and
never touch storage.
"""
