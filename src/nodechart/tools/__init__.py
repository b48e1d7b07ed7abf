"""Development tools: timing hooks and the Matplotlib series plotter."""
