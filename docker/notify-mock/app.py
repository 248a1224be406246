import logging
import sys

from fastapi import FastAPI, Response, status
from pydantic import BaseModel

logging.basicConfig(stream=sys.stdout, level=logging.INFO, format="%(asctime)sZ %(levelname)s %(message)s")

app = FastAPI(title="Notification Mock", version="1.0.0")

class SendEmail(BaseModel):
    to: str
    subject: str
    body: str

class SendSms(BaseModel):
    to: str
    message: str
    sender_id: str | None = None

@app.get("/health")
def health() -> dict:
    return {"status": "ok"}

@app.post("/send", status_code=status.HTTP_202_ACCEPTED)
async def send_email(payload: SendEmail) -> Response:
    logging.info("MOCK email to=%s subject=%r body=%r", payload.to, payload.subject, payload.body)
    return Response(status_code=status.HTTP_202_ACCEPTED)

@app.post("/sms/send", status_code=status.HTTP_202_ACCEPTED)
async def send_sms(payload: SendSms) -> Response:
    logging.info("MOCK sms to=%s sender=%s message=%r", payload.to, payload.sender_id, payload.message)
    return Response(status_code=status.HTTP_202_ACCEPTED)
