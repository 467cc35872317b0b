from nutria import create_app

app = create_app()
