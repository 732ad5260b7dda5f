from console_enhancer.cli import app


app()
