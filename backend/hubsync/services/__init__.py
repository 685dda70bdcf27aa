"""
Services: persistence adapters, scheduler and the HubSpot sync engine.
"""
