"""
CrawlFlow CLI - Command-line interface
"""
