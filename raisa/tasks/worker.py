from redis import Redis
from rq import Queue, Worker

from raisa.config import settings
from raisa.tasks.tasks import QUEUE_NAME, schedule_periodic_jobs
from raisa.utils.logger import setup_logger

listen = [QUEUE_NAME]

logger = setup_logger("raisa", settings.LOG_LEVEL)


def main(schedule: bool = True):
    conn = Redis.from_url(settings.REDIS_URL)
    queues = [Queue(name, connection=conn) for name in listen]
    if schedule:
        schedule_periodic_jobs(queues[0])

    logger.info("🚀 Worker iniciado, aguardando tarefas...")
    worker = Worker(queues, connection=conn)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
