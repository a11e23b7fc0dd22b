"""ScrapeFlow: visual browser-automation workflows compiled and run server-side."""
