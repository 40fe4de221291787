"""
Rendering Module
===============

Browser automation and image post-processing.

Components:
- browser: Shared Playwright browser session with scoped page acquisition
- capture: Render protocol driving a page to a stable screenshot
- image_processor: Resize and encode policy for captured pixels
"""
