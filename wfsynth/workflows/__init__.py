"""Task graph model, the application base class and one topology builder per family.

Builders are looked up through `wfsynth.workflows.registry`.
"""
