from bitbucket_mcp.server import run

run()
