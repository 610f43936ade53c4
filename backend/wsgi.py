from skinshop import create_app

app = create_app()
