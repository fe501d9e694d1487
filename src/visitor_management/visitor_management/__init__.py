"""Visitor Management package.

Feature modules (visitors, complaints, feedback, lost items, ...) each carry
their own model / repository / service / controller layers, wired together in
``container.py`` and exposed as a JSON API by ``main.create_app``.
"""
