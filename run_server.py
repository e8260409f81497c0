import uvicorn

if __name__ == "__main__":
    # Needs SIGNAGE_PROPERTIES (and SIGNAGE_ROOM unless a room is remembered)
    print("Starting Signage Display API...")
    print("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "signage.api.server:app",
        host="0.0.0.0",
        port=8000
    )
